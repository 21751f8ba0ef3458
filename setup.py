from setuptools import setup, find_packages

setup(
    name="recursebuster",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "requests",
        "backoff",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "recursebuster = recursebuster.cli:main",
        ],
    },
    author="exfil0",
    description="Recursive web content discovery with soft-404 detection",
    license="MIT",
    keywords="content discovery directory bruteforce recon security",
    python_requires=">=3.7",
)
