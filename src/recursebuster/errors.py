"""
Exception taxonomy.

Setup problems (bad options, malformed target URLs) raise ConfigError before
any request is sent. Per-request failures raise TransportError and never
leave the job that triggered them.
"""
from urllib.parse import urlparse


class RecurseBusterError(Exception):
    """Base exception for recursebuster"""
    pass


class ConfigError(RecurseBusterError):
    """Invalid run configuration or target, fatal at setup time"""
    pass


class TransportError(RecurseBusterError):
    """A single HTTP exchange failed (connection refused, timeout, TLS...)"""

    def __init__(self, url, reason):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


def validate_url(url):
    """
    Validate target URL format

    Raises:
        ConfigError: If URL is invalid
    """
    if not url or not isinstance(url, str):
        raise ConfigError("URL must be a non-empty string")

    url = url.strip()

    if len(url) > 2048:
        raise ConfigError("URL exceeds maximum length of 2048 characters")

    if any(char in url for char in ['\x00', '\r', '\n', '\t', ' ']):
        raise ConfigError(f"URL contains invalid characters: {url!r}")

    try:
        result = urlparse(url)
        # Accessing .port validates it
        result.port
    except ValueError as e:
        raise ConfigError(f"Invalid URL format: {e}") from e

    if result.scheme not in ('http', 'https'):
        raise ConfigError(f"URL scheme must be http:// or https:// ({url})")
    if not result.hostname:
        raise ConfigError(f"URL must include a hostname ({url})")
    return True
