import os
import sys
import logging
from dataclasses import dataclass, field
from requests.packages.urllib3.exceptions import InsecureRequestWarning
import requests

from .errors import ConfigError

# Suppress SSL warnings globally
requests.packages.urllib3.disable_warnings(InsecureRequestWarning)

# User Agents for rotation
USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.1.1 Safari/605.1.15',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/92.0.4515.107 Safari/537.36',
    'Mozilla/5.0 (iPhone; CPU iPhone OS 14_6 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.0 Mobile/15E148 Safari/604.1',
    'Mozilla/5.0 (Android 10; Mobile; rv:90.0) Gecko/90.0 Firefox/90.0',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:89.0) Gecko/20100101 Firefox/89.0'
]

METHOD_ORDER = ('GET', 'POST', 'HEAD')

# Statuses that make an extension-less hit worth enumerating as a directory
DIRECTORY_STATUSES = frozenset({200, 204, 301, 302, 303, 307, 308, 401, 403})

# Logger setup (can be customized)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger('recursebuster')


def parse_code_list(s):
    """Converts '404,500-502' -> {404, 500, 501, 502}"""
    codes = set()
    for piece in (s or '').split(','):
        piece = piece.strip()
        if not piece:
            continue
        try:
            if '-' in piece:
                start, end = map(int, piece.split('-', 1))
                codes.update(range(start, end + 1))
            else:
                codes.add(int(piece))
        except ValueError:
            raise ConfigError(f"Invalid status code specification: {piece!r}") from None
    return frozenset(codes)


def parse_header_list(entries, option='header'):
    """Parses repeatable 'Name: value' options into (name, value) pairs."""
    pairs = []
    for entry in entries or ():
        if ':' not in entry:
            raise ConfigError(f"Invalid {option} {entry!r}, expected 'Name: value'")
        name, value = entry.split(':', 1)
        name = name.strip()
        if not name:
            raise ConfigError(f"Invalid {option} {entry!r}, header name is empty")
        pairs.append((name, value.strip()))
    return tuple(pairs)


def parse_cookies(cookie_string):
    """
    Convert cookie string to dict for requests
    Example: 'session=abc123; user=admin' -> {'session': 'abc123', 'user': 'admin'}
    """
    cookies = {}
    for cookie in (cookie_string or '').split(';'):
        cookie = cookie.strip()
        if '=' in cookie:
            key, value = cookie.split('=', 1)
            cookies[key.strip()] = value.strip()
    return cookies


def parse_extensions(s):
    return tuple(ext.strip().lstrip('.') for ext in (s or '').split(',') if ext.strip().lstrip('.'))


def enabled_methods(methods, no_get=False, no_head=False):
    requested = {m.strip().upper() for m in (methods or '').split(',') if m.strip()}
    unknown = requested - set(METHOD_ORDER)
    if unknown:
        raise ConfigError(f"Unsupported method(s): {', '.join(sorted(unknown))}")
    if not no_head:
        requested.add('HEAD')
    if no_get:
        requested.discard('GET')
    result = tuple(m for m in METHOD_ORDER if m in requested)
    if not result:
        raise ConfigError("No request methods left enabled (check methods/no_get/no_head)")
    return result


@dataclass(frozen=True)
class Config:
    """Run options. Built once at startup and never mutated afterwards."""
    url: str = ''
    threads: int = 5
    timeout: float = 20
    methods: str = 'GET'
    no_get: bool = False
    no_head: bool = False
    no_recursion: bool = False
    no_spider: bool = False
    no_base: bool = False
    no_wildcard_checks: bool = False
    append_dir: bool = False
    extensions: str = ''
    bad_responses: str = '404'
    bad_headers: tuple = ()
    headers: tuple = ()
    cookies: str = ''
    auth: str = ''
    ajax: bool = False
    body_content: str = ''
    canary: str = ''
    ratio_404: float = 0.95
    show_all: bool = False
    blacklist_location: str = ''
    https: bool = False
    ssl_ignore: bool = False
    proxy_addr: str = ''
    follow_redirects: bool = False
    agent: str = ''
    max_depth: int = 0
    max_queue: int = 10000
    output_path: str = 'busted.txt'
    show_len: bool = False
    no_status: bool = False
    verbose: bool = False

    extension_list: tuple = field(init=False, repr=False, compare=False)
    bad_response_codes: frozenset = field(init=False, repr=False, compare=False)
    bad_header_pairs: tuple = field(init=False, repr=False, compare=False)
    header_pairs: tuple = field(init=False, repr=False, compare=False)
    cookie_dict: dict = field(init=False, repr=False, compare=False)
    method_list: tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.threads < 1:
            raise ConfigError(f"threads must be at least 1 (got {self.threads})")
        if self.max_queue < 1:
            raise ConfigError(f"max_queue must be at least 1 (got {self.max_queue})")
        if not 0.0 <= self.ratio_404 <= 1.0:
            raise ConfigError(f"ratio_404 must be within [0, 1] (got {self.ratio_404})")

        # frozen dataclass, so derived values go in through object.__setattr__
        object.__setattr__(self, 'extension_list', parse_extensions(self.extensions))
        object.__setattr__(self, 'bad_response_codes', parse_code_list(self.bad_responses))
        object.__setattr__(self, 'bad_header_pairs', parse_header_list(self.bad_headers, 'bad header'))
        object.__setattr__(self, 'header_pairs', parse_header_list(self.headers))
        object.__setattr__(self, 'cookie_dict', parse_cookies(self.cookies))
        object.__setattr__(self, 'method_list', enabled_methods(self.methods, self.no_get, self.no_head))


def load_env_defaults():
    """Option defaults taken from the environment (loaded from env vars)."""
    defaults = {}
    proxy = os.getenv('RECURSEBUSTER_PROXY', '')
    if proxy:
        defaults['proxy_addr'] = proxy
    agent = os.getenv('RECURSEBUSTER_AGENT', '')
    if agent:
        defaults['agent'] = agent
    return defaults
