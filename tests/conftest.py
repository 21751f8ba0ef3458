import re
import time
import threading
from collections import Counter
from urllib.parse import urlsplit

import pytest
from requests.structures import CaseInsensitiveDict

from recursebuster.config import Config
from recursebuster.enumerator import DirectoryEnumerator
from recursebuster.errors import TransportError
from recursebuster.models import HTTPResponse

TARGET = 'http://target.test/'

NOT_FOUND_FILLER = ''.join(
    f"<p>{i:02d}: the resource you asked for is not on this server, check the address and try again</p>\n"
    for i in range(40)
)
CANARY_FILLER = ''.join(f"<li>catch-all entry {i} served for any unknown name</li>\n" for i in range(60))


def not_found_body(path):
    return f"<html><head><title>Oops</title></head><body><h1>{path} was not found</h1>\n{NOT_FOUND_FILLER}</body></html>".encode()


def canary_body(path):
    return f"<html><body><h2>Everything lives at {path}</h2><ul>\n{CANARY_FILLER}</ul></body></html>".encode()


def page_body(path):
    return f"<html><body>Welcome to {path}</body></html>".encode()


REAL_PAGES = {'/', '/a', '/a/', '/a/b', '/a/b/', '/a/b/c', '/appendslash/', '/a.csv', '/a.exe', '/a.aspx'}

STATUS_ROUTES = {'/a/b/c/': 401, '/a/b/c/d': 403, '/c': 500, '/c/': 500, '/c/d': 500, '/badcode': 500}

REDIRECTS = {
    '/b': (302, '/a/'),
    '/b/c': (301, '/a/b'),
    '/b/c/': (302, '/a/b/c'),
    '/loop1': (302, '/loop2'),
    '/loop2': (302, 'http://target.test/loop1'),
    '/elsewhere': (302, 'http://other.test/admin'),
}


def _ajax(headers):
    return headers.get('X-Requested-With') == 'XMLHttpRequest'


CONDITIONAL = {
    '/basicauth': lambda m, h, c, b: h.get('Authorization') == 'Basic dGVzdDp0ZXN0',
    '/ajaxonly': lambda m, h, c, b: _ajax(h),
    '/onlynoajax': lambda m, h, c, b: not _ajax(h),
    '/ajaxpost': lambda m, h, c, b: m == 'POST' and _ajax(h),
    '/postbody': lambda m, h, c, b: m == 'POST' and b == 'test=bodycontent',
    '/cookiesonly': lambda m, h, c, b: c.get('lol') == 'ok' and c.get('cookie2') == 'test',
    '/customheaderonly': lambda m, h, c, b: h.get('X-ATT-DeviceId') == 'XXXXX',
    '/onlynocustomheader': lambda m, h, c, b: 'X-ATT-DeviceId' not in h,
    '/getonly': lambda m, h, c, b: m == 'GET',
    '/headonly': lambda m, h, c, b: m == 'HEAD',
}

A_CHILD = re.compile(r'^/a/[^/]+/?$')


def route(method, path, headers, cookies, body):
    segment = path.rstrip('/').rsplit('/', 1)[-1]
    if segment.startswith('canary'):
        return 200, {}, canary_body(path)
    if path in REAL_PAGES:
        return 200, {}, page_body(path)
    if path in STATUS_ROUTES:
        return STATUS_ROUTES[path], {}, page_body(path)
    if path in REDIRECTS:
        status, location = REDIRECTS[path]
        return status, {'Location': location}, b''
    if path in CONDITIONAL:
        if CONDITIONAL[path](method, headers, cookies, body):
            return 200, {}, page_body(path)
        return 404, {}, not_found_body(path)
    if path == '/badheader':
        return 200, {'X-Bad-Header': 'test123'}, page_body(path)
    if path == '/a/x':
        return 200, {}, not_found_body('/x')
    if A_CHILD.match(path):
        # soft-404: every other name directly under /a/ answers 200
        return 200, {}, not_found_body(path)
    return 404, {}, not_found_body(path)


class FakeTransport:
    """In-process stand-in for a test web server."""

    def __init__(self, fail=None, delay=0.0, handler=None):
        self.fail = fail
        self.delay = delay
        # handler(method, path) -> (status, headers, body) replaces the routing table
        self.handler = handler
        self.calls = []
        self._lock = threading.Lock()

    def send(self, method, url, headers=None, cookies=None, body=None):
        path = urlsplit(url).path or '/'
        with self._lock:
            self.calls.append((method, url))
        if self.delay:
            time.sleep(self.delay)
        if self.fail and self.fail(method, path):
            raise TransportError(url, 'ConnectionError - connection refused')

        if self.handler:
            status, response_headers, content = self.handler(method, path)
            return HTTPResponse(status, CaseInsensitiveDict(response_headers), content, url)

        status, extra, content = route(method, path, CaseInsensitiveDict(headers or {}), cookies or {}, body)
        response_headers = CaseInsensitiveDict({'Content-Type': 'text/html', 'Content-Length': str(len(content))})
        response_headers.update(extra)
        if method == 'HEAD':
            content = b''
        return HTTPResponse(status, response_headers, content, url)

    def requested_paths(self):
        with self._lock:
            return [urlsplit(url).path for _, url in self.calls]

    def path_counts(self):
        return Counter(self.requested_paths())


def make_config(**options):
    options.setdefault('threads', 1)
    options.setdefault('url', TARGET)
    return Config(**options)


def hit_paths(results):
    return {urlsplit(r.url).path for r in results if r.hit}


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def scan():
    """Runs one enumeration against the fake server and returns the finished enumerator."""
    def run(words, transport=None, blacklist=None, **options):
        enumerator = DirectoryEnumerator(make_config(**options), words,
                                         transport=transport or FakeTransport(), blacklist=blacklist)
        try:
            enumerator.start(TARGET)
            assert enumerator.wait(timeout=30), "enumeration did not finish"
        finally:
            enumerator.shutdown()
        return enumerator
    return run
