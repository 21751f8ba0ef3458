"""
Shared coordination state.

One ScanState is built per run and handed to every component at
construction. Everything that crosses threads goes through it: the
outstanding-work counter, the results and log channels, and the
insert-if-absent sets used for dedup.
"""
import time
import queue
import random
import logging
import threading
from urllib.parse import urlsplit

from .config import logger
from .errors import validate_url
from .models import Host, LogEvent


class WorkTracker:
    """Outstanding-work counter; the run is complete when it returns to zero."""

    def __init__(self):
        self._count = 0
        self._cond = threading.Condition()

    def add(self, n=1):
        with self._cond:
            self._count += n

    def done(self):
        with self._cond:
            if self._count <= 0:
                raise RuntimeError("WorkTracker.done() called more times than add()")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def wait(self, timeout=None):
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout)

    @property
    def pending(self):
        with self._cond:
            return self._count


class Channel:
    """
    Unbounded queue whose items each hold one unit of work.

    put() claims the unit before the item becomes visible, the consumer calls
    done() once it has finished with the item.
    """
    _CLOSED = object()

    def __init__(self, tracker):
        self._tracker = tracker
        self._queue = queue.Queue()

    def put(self, item):
        self._tracker.add()
        self._queue.put(item)

    def get(self, timeout=None):
        """Returns the next item, or None once the channel has been closed."""
        item = self._queue.get(timeout=timeout)
        if item is self._CLOSED:
            return None
        return item

    def done(self):
        self._tracker.done()

    def close(self):
        self._queue.put(self._CLOSED)

    def qsize(self):
        return self._queue.qsize()


def make_canary_token():
    return f"{''.join(random.choices('abcdefghijklmnopqrstuvwxyz', k=15))}-{int(time.time())}"


class ScanState:
    def __init__(self, config, wordlist, blacklist=None):
        self.config = config
        self.wordlist = list(wordlist or [])
        self.blacklist = frozenset(blacklist or ())
        self.canary = config.canary or make_canary_token()

        self.tracker = WorkTracker()
        self.results = Channel(self.tracker)
        self.logs = Channel(self.tracker)

        self.hosts = {}
        self.stats = {'requests': 0, 'hits': 0, 'noise': 0, 'errors': 0, 'skipped': 0, 'roots': 0}

        self._lock = threading.Lock()
        self._reported = set()
        self._candidates = set()
        # set on shutdown; pending work is drained without sending requests
        self.stopping = threading.Event()

    # --- hosts ---

    def add_host(self, url):
        """Registers the scheme+authority of url, returning its Host."""
        validate_url(url)
        parts = urlsplit(url)
        with self._lock:
            host = self.hosts.get((parts.scheme, parts.netloc))
            if host is None:
                host = Host(parts.scheme, parts.netloc)
                self.hosts[(parts.scheme, parts.netloc)] = host
            return host

    def host_for(self, url):
        parts = urlsplit(url)
        with self._lock:
            return self.hosts.get((parts.scheme, parts.netloc))

    # --- filters and dedup ---

    def is_blacklisted(self, url):
        if not self.blacklist:
            return False
        return url in self.blacklist or url.rstrip('/') in self.blacklist

    def claim_report(self, url, hit=True):
        """True exactly once per (url, hit) pair."""
        key = (url, hit)
        with self._lock:
            if key in self._reported:
                return False
            self._reported.add(key)
            return True

    def claim_candidate(self, url):
        with self._lock:
            if url in self._candidates:
                return False
            self._candidates.add(url)
            return True

    def count(self, stat, n=1):
        with self._lock:
            self.stats[stat] = self.stats.get(stat, 0) + n

    # --- diagnostics ---

    def emit(self, message, level=logging.INFO):
        """Queues a progress event on the log channel."""
        if level < logging.INFO and not logger.isEnabledFor(level):
            return
        self.logs.put(LogEvent(level, message))
