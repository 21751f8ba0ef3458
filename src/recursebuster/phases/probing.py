import logging
from urllib.parse import urljoin, urlsplit

from ..config import logger
from ..errors import TransportError
from ..models import ConfirmedResult, Job


def build_request(config, method):
    """Headers, cookies and body for one request under config."""
    headers = {name: value for name, value in config.header_pairs}
    if config.ajax:
        headers['X-Requested-With'] = 'XMLHttpRequest'
    if config.auth:
        headers['Authorization'] = f"Basic {config.auth}"
    body = config.body_content if method == 'POST' and config.body_content else None
    return headers, dict(config.cookie_dict), body


def last_segment(url):
    return urlsplit(url).path.rstrip('/').rsplit('/', 1)[-1]


def parent_directory(url):
    parts = urlsplit(url)
    path = parts.path or '/'
    return f"{parts.scheme}://{parts.netloc}{path[:path.rfind('/') + 1]}"


class RequestExecutor:
    def __init__(self, state, transport, detector, manager):
        self.state = state
        self.config = state.config
        self.transport = transport
        self.detector = detector
        self.manager = manager

    def is_canary_word(self, job):
        word = job.word or last_segment(job.url)
        canary = self.state.canary
        return word == canary or word.startswith(canary + '.')

    def has_bad_header(self, response):
        for name, value in self.config.bad_header_pairs:
            if response.headers.get(name) == value:
                return True
        return False

    def execute(self, job):
        try:
            self._execute(job)
        finally:
            self.manager.job_finished(job)
            self.state.tracker.done()

    def _execute(self, job):
        state = self.state
        if state.stopping.is_set():
            return
        if state.is_blacklisted(job.url):
            logger.debug(f" [-] Skipping blacklisted URL: {job.url}")
            state.count('skipped')
            return

        headers, cookies, body = build_request(self.config, job.method)
        try:
            response = self.transport.send(job.method, job.url, headers=headers, cookies=cookies, body=body)
        except TransportError as e:
            state.count('errors')
            state.emit(f" [!] {job.method} {job.url} failed: {e.reason}", logging.WARNING)
            return
        state.count('requests')

        if self.has_bad_header(response) or self.is_canary_word(job):
            hit = False
        else:
            hit = self.detector.classify(job.directory, response, method=job.method)

        if not hit:
            state.count('noise')
            logger.debug(f" [-] Noise: {job.method} {response.status} {job.url}")
            if self.config.show_all and state.claim_report(job.url, hit=False):
                state.results.put(self._result(job, response, hit=False))
            return

        state.count('hits')
        if not state.claim_report(job.url):
            return
        result = self._result(job, response)
        state.results.put(result)
        self.follow_up(job, result, response)

    def _result(self, job, response, hit=True):
        return ConfirmedResult(
            url=job.url, method=job.method, status=response.status, length=response.length,
            headers=dict(response.headers), hit=hit, directory=job.directory, depth=job.depth,
        )

    def follow_up(self, job, result, response):
        """Queues new roots and redirect targets derived from a fresh hit."""
        root = self.manager.directory_for(result, response)
        if root:
            self.manager.add_root(root, job.depth + 1)

        if not response.is_redirect:
            return
        target = urljoin(job.url, response.location).split('#', 1)[0]
        host = self.state.host_for(job.url)
        if host is None or not host.owns(target) or target.endswith('/'):
            return
        if self.state.claim_candidate(target):
            logger.debug(f" [.] Following redirect {job.url} -> {target}")
            self.manager.submit(Job(target, job.method, parent_directory(target), job.depth, last_segment(target)))
