import hashlib
import logging
import threading
from difflib import SequenceMatcher

from ..config import logger
from ..errors import TransportError
from ..models import CanarySignature
from .probing import build_request

# Only the head of each body takes part in the content comparison
SAMPLE_SIZE = 2048

DEGENERATE = CanarySignature(status=0, length=0, digest='', sample=b'', failed=True)


def length_ratio(a, b):
    if a == b:
        return 1.0
    return min(a, b) / max(a, b)


def similarity(body_a, length_a, body_b, length_b):
    """
    Symmetric similarity of two responses in [0, 1].

    Minimum of the length ratio and the SequenceMatcher ratio of the body
    samples. If either body is missing (HEAD), only lengths are compared.
    """
    ratio = length_ratio(length_a, length_b)
    if not body_a or not body_b or ratio == 0.0:
        return ratio
    if body_a == body_b:
        return 1.0
    matcher = SequenceMatcher(None, body_a[:SAMPLE_SIZE], body_b[:SAMPLE_SIZE], autojunk=False)
    return min(ratio, matcher.ratio())


def signature_for(response):
    return CanarySignature(
        status=response.status,
        length=response.length,
        digest=hashlib.sha1(response.body).hexdigest() if response.body else '',
        sample=response.body[:SAMPLE_SIZE],
        sized=response.length_known,
    )


class _BaselineSlot:
    def __init__(self):
        self.ready = threading.Event()
        self.signature = None
        self.probes = 0


class CanaryDetector:
    """
    Per-directory soft-404 baseline.

    A request for <directory><canary> shows what "not found" looks like in
    that directory. Servers often answer HEAD differently from GET, so each
    directory keeps one baseline per method. Each (directory, method) pair is
    probed once; concurrent callers wait for the in-flight probe instead of
    sending their own.
    """

    def __init__(self, state, transport):
        self.state = state
        self.transport = transport
        self.method = state.config.method_list[0]
        self._lock = threading.Lock()

    def _slot(self, directory, method):
        host = self.state.host_for(directory) or self.state.add_host(directory)
        with self._lock:
            slot = host.canaries.get((directory, method))
            if slot is None:
                slot = host.canaries[(directory, method)] = _BaselineSlot()
                return slot, True
            return slot, False

    def get_baseline(self, directory, method=None):
        method = method or self.method
        slot, owner = self._slot(directory, method)
        if not owner:
            slot.ready.wait()
            return slot.signature
        try:
            slot.probes += 1
            slot.signature = self._probe(directory, method)
        finally:
            if slot.signature is None:
                slot.signature = DEGENERATE
            slot.ready.set()
        return slot.signature

    def probe_count(self, directory, method=None):
        host = self.state.host_for(directory)
        slot = host.canaries.get((directory, method or self.method)) if host else None
        return slot.probes if slot else 0

    def _probe(self, directory, method):
        if self.state.config.no_wildcard_checks:
            return DEGENERATE

        url = directory + self.state.canary
        headers, cookies, body = build_request(self.state.config, method)
        try:
            response = self.transport.send(method, url, headers=headers, cookies=cookies, body=body)
        except TransportError as e:
            self.state.count('errors')
            self.state.emit(f" [!] Canary probe failed for {directory} ({method}, {e.reason}). "
                            f"Classifying by status only.", logging.WARNING)
            return DEGENERATE

        self.state.count('requests')
        signature = signature_for(response)
        if response.status not in self.state.config.bad_response_codes:
            self.state.emit(f" [!] Wildcard response in {directory} ({method}): {response.status} "
                            f"(length {signature.length}). Content comparison will be used.", logging.WARNING)
        else:
            logger.debug(f" [.] Baseline for {directory} ({method}): {response.status} (length {signature.length})")
        return signature

    def classify(self, directory, response, signature=None, method=None):
        """True when response is real content rather than the directory's catch-all page."""
        config = self.state.config
        if response.status in config.bad_response_codes:
            return False

        if signature is None:
            signature = self.get_baseline(directory, method)
        if response.status != signature.status:
            return True

        # Same status as the baseline, so compare content
        if not response.length_known or not signature.sized:
            # Nothing to compare against
            return False
        threshold = config.ratio_404
        if signature.digest and response.body and hashlib.sha1(response.body).hexdigest() == signature.digest:
            return False
        if length_ratio(response.length, signature.length) < threshold:
            return True
        if response.body and signature.sample:
            matcher = SequenceMatcher(None, response.body[:SAMPLE_SIZE], signature.sample, autojunk=False)
            if matcher.quick_ratio() < threshold:
                return True
        return similarity(response.body, response.length, signature.sample, signature.length) < threshold
