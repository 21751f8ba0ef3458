import queue
import threading
from urllib.parse import urljoin

from ..config import logger, DIRECTORY_STATUSES
from ..models import Job, RootState
from .probing import last_segment


class RecursionManager:
    """
    Owns the frontier of directories accepted for enumeration.

    Roots and follow-up jobs arrive on an unbounded inbox and are turned into
    Jobs for the worker pool by a single management thread. Every inbox item
    carries one claimed unit of work.
    """

    def __init__(self, state, detector):
        self.state = state
        self.config = state.config
        self.detector = detector
        self.pool = None
        self.inbox = queue.Queue()
        self._frontier = {}
        self._outstanding = {}
        self._seeding = set()
        self._lock = threading.Lock()
        self._thread = None

    def attach_pool(self, pool):
        self.pool = pool

    # --- frontier ---

    def add_root(self, url, depth=0, initial=False):
        """Accepts url as a directory to enumerate. False if it was pruned or already known."""
        if not url.endswith('/'):
            url += '/'
        if self.state.is_blacklisted(url):
            logger.debug(f" [-] Not recursing into blacklisted {url}")
            return False
        if not initial and self.config.no_recursion:
            return False
        if self.config.max_depth and depth > self.config.max_depth:
            logger.debug(f" [-] Not recursing into {url}: depth {depth} exceeds {self.config.max_depth}")
            return False

        with self._lock:
            if url in self._frontier:
                return False
            self._frontier[url] = RootState.PENDING
        self.state.count('roots')
        self.state.tracker.add()
        self.inbox.put(('root', url, depth))
        if not initial:
            self.state.emit(f" [+] New directory: {url}")
        return True

    def submit(self, job):
        self.state.tracker.add()
        self.inbox.put(('job', job))

    @property
    def frontier(self):
        with self._lock:
            return dict(self._frontier)

    def state_of(self, url):
        with self._lock:
            return self._frontier.get(url)

    def _set_state(self, url, root_state):
        with self._lock:
            self._frontier[url] = root_state

    # --- management thread ---

    def start(self):
        if self._thread is None:
            self._thread = threading.Thread(target=self.run, name="recursebuster-manager", daemon=True)
            self._thread.start()

    def stop(self, timeout=None):
        if self._thread is not None:
            self.inbox.put(None)
            self._thread.join(timeout)
            self._thread = None

    def run(self):
        while True:
            item = self.inbox.get()
            if item is None:
                break
            if item[0] == 'job':
                # the unit claimed in submit() now travels with the job
                self._dispatch(item[1], claimed=True)
                continue
            _, root, depth = item
            try:
                if not self.state.stopping.is_set():
                    self._enumerate(root, depth)
            except Exception as e:
                logger.error(f" [!] Enumeration of {root} aborted: {type(e).__name__} - {e}")
            finally:
                self.state.tracker.done()

    def _enumerate(self, root, depth):
        self._set_state(root, RootState.BASELINING)
        with self._lock:
            self._seeding.add(root)
        try:
            self.detector.get_baseline(root)
            self._set_state(root, RootState.ENUMERATING)
            self.state.emit(f"[*] Enumerating {root} (depth {depth})")
            for job in self.jobs_for(root, depth):
                if self.state.stopping.is_set():
                    break
                self._dispatch(job)
        finally:
            with self._lock:
                self._seeding.discard(root)
                finished = not self._outstanding.get(root)
                if finished:
                    self._frontier[root] = RootState.COMPLETE
            if finished:
                logger.debug(f" [.] Finished {root}")

    def jobs_for(self, root, depth):
        methods = self.config.method_list
        if not self.config.no_base:
            for method in methods:
                yield Job(root, method, root, depth, '')
        for word in self.state.wordlist:
            word = word.strip().lstrip('/')
            if not word or word.startswith('#'):
                continue
            for method in methods:
                yield Job(root + word, method, root, depth, word)
                if self.config.append_dir:
                    yield Job(root + word + '/', method, root, depth, word)
                for ext in self.config.extension_list:
                    yield Job(f"{root}{word}.{ext}", method, root, depth, f"{word}.{ext}")

    def _dispatch(self, job, claimed=False):
        with self._lock:
            self._outstanding[job.directory] = self._outstanding.get(job.directory, 0) + 1
        if not claimed:
            self.state.tracker.add()
        self.pool.put(job)

    def job_finished(self, job):
        with self._lock:
            remaining = self._outstanding.get(job.directory, 0) - 1
            self._outstanding[job.directory] = remaining
            if (remaining <= 0 and job.directory not in self._seeding
                    and self._frontier.get(job.directory) == RootState.ENUMERATING):
                self._frontier[job.directory] = RootState.COMPLETE
                completed = True
            else:
                completed = False
        if completed:
            logger.debug(f" [.] Finished {job.directory}")

    # --- directory heuristics ---

    def directory_for(self, result, response):
        """Root URL a confirmed result points at, or None if it does not look like a directory."""
        if not result.hit:
            return None
        url = result.url
        if url.endswith('/'):
            return url

        if response.is_redirect:
            target = urljoin(url, response.location).split('#', 1)[0]
            host = self.state.host_for(url)
            if host is not None and host.owns(target) and target.endswith('/'):
                return target

        segment = last_segment(url)
        if segment and '.' not in segment and result.status in DIRECTORY_STATUSES:
            return url + '/'
        return None
