import logging
import threading
from urllib.parse import urlsplit, urlunsplit

from .config import logger
from .errors import validate_url
from .state import ScanState
from .phases.wildcard import CanaryDetector
from .phases.probing import RequestExecutor
from .phases.dispatch import WorkerPool
from .phases.recursion import RecursionManager
from .utils.http_utils import RequestsTransport


class DirectoryEnumerator:
    """
    Recursive content discovery against one or more web roots.

    Wires the shared ScanState, canary detector, request executor, worker
    pool and recursion manager together. The transport is injectable; it
    defaults to a requests-backed one built from config.
    """

    def __init__(self, config, wordlist, transport=None, blacklist=None):
        self.config = config
        self.state = ScanState(config, wordlist, blacklist)
        self.transport = transport if transport is not None else RequestsTransport(config)

        self.detector = CanaryDetector(self.state, self.transport)
        self.manager = RecursionManager(self.state, self.detector)
        self.executor = RequestExecutor(self.state, self.transport, self.detector, self.manager)
        self.pool = WorkerPool(self.state, self.executor, config.threads)
        self.manager.attach_pool(self.pool)

        self.results = []
        self._results_lock = threading.Lock()
        self._consumers = []
        self._running = False

        if config.verbose:
            logger.setLevel(logging.DEBUG)

    def normalize_root(self, url):
        url = url.strip()
        if '://' not in url:
            url = f"{'https' if self.config.https else 'http'}://{url}"
        parts = urlsplit(url)
        path = parts.path or '/'
        if not path.endswith('/'):
            path += '/'
        return urlunsplit((parts.scheme, parts.netloc, path, '', ''))

    # --- lifecycle ---

    def start(self, url):
        """Queues url as an initial root. ConfigError if it is malformed."""
        root = self.normalize_root(url)
        validate_url(root)
        self.state.add_host(root)

        if not self._consumers:
            self.consume()
        if not self._running:
            self.manager.start()
            self.pool.start()
            self._running = True

        logger.info(f"[*] Canary token: {self.state.canary}")
        self.manager.add_root(root, 0, initial=True)
        return root

    def consume(self, on_result=None, on_log=None):
        if self._consumers:
            return
        on_log = on_log or self._log_event
        for name, channel, handler in (('results', self.state.results, self._collector(on_result)),
                                       ('logs', self.state.logs, on_log)):
            thread = threading.Thread(target=self._drain, args=(channel, handler),
                                      name=f"recursebuster-{name}", daemon=True)
            thread.start()
            self._consumers.append(thread)

    def _collector(self, callback):
        def handle(result):
            with self._results_lock:
                self.results.append(result)
            if callback:
                callback(result)
        return handle

    @staticmethod
    def _log_event(event):
        logger.log(event.level, event.message)

    @staticmethod
    def _drain(channel, handler):
        while True:
            item = channel.get()
            if item is None:
                break
            try:
                handler(item)
            except Exception as e:
                logger.error(f" [!] Error handling {type(item).__name__}: {e}")
            finally:
                channel.done()

    def wait(self, timeout=None):
        return self.state.tracker.wait(timeout)

    def shutdown(self):
        self.state.stopping.set()
        if self._running:
            self.manager.stop()
            self.pool.stop()
            self._running = False
        if self._consumers:
            self.state.results.close()
            self.state.logs.close()
            for thread in self._consumers:
                thread.join()
            self._consumers = []
        close = getattr(self.transport, 'close', None)
        if close:
            close()

    def run(self, urls):
        if isinstance(urls, str):
            urls = [urls]
        logger.info(f"\n--- Starting recursive discovery: {len(urls)} target(s), "
                    f"{len(self.state.wordlist)} words, methods {','.join(self.config.method_list)} ---")
        try:
            for url in urls:
                self.start(url)
            self.wait()
        finally:
            self.shutdown()
        self.phase_final_reporting()
        return list(self.results)

    def phase_final_reporting(self):
        stats = self.state.stats
        logger.info("\n--- Final Report ---")
        logger.info(f"[*] Requests: {stats['requests']} | Hits: {stats['hits']} | Noise: {stats['noise']} | "
                    f"Errors: {stats['errors']} | Skipped: {stats['skipped']}")
        logger.info(f"[*] Directories enumerated: {len(self.frontier)}")

    # --- results ---

    @property
    def hits(self):
        with self._results_lock:
            return [r for r in self.results if r.hit]

    @property
    def frontier(self):
        return self.manager.frontier
