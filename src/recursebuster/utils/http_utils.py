import random
import threading

import backoff
import requests
from requests.structures import CaseInsensitiveDict

from ..config import USER_AGENTS, logger
from ..errors import TransportError
from ..models import HTTPResponse

RETRYABLE = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


class RequestsTransport:
    """
    HTTP capability backed by requests.

    One Session per worker thread; sessions are not shared across threads.
    Connection errors and timeouts are retried with exponential backoff
    before surfacing as TransportError.
    """

    def __init__(self, config, max_tries=3):
        self.config = config
        self.max_tries = max_tries
        self._local = threading.local()
        self._sessions = []
        self._sessions_lock = threading.Lock()

    def get_session(self):
        session = getattr(self._local, 'session', None)
        if session is None:
            session = requests.Session()
            session.headers.update({'User-Agent': self.config.agent or random.choice(USER_AGENTS)})
            session.verify = not self.config.ssl_ignore
            if self.config.proxy_addr:
                session.proxies = {'http': self.config.proxy_addr, 'https': self.config.proxy_addr}
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def _request(self, method, url, headers=None, cookies=None, body=None):
        @backoff.on_exception(backoff.expo, RETRYABLE, max_tries=self.max_tries,
                              jitter=backoff.full_jitter, logger=logger)
        def attempt():
            return self.get_session().request(
                method, url, headers=headers, cookies=cookies, data=body,
                timeout=self.config.timeout, allow_redirects=self.config.follow_redirects,
            )
        return attempt()

    def send(self, method, url, headers=None, cookies=None, body=None):
        try:
            response = self._request(method, url, headers=headers, cookies=cookies, body=body)
            content = response.content
        except requests.exceptions.RequestException as e:
            raise TransportError(url, f"{type(e).__name__} - {e}") from e

        return HTTPResponse(
            status=response.status_code,
            headers=CaseInsensitiveDict(response.headers),
            body=content or b'',
            url=response.url or url,
        )

    def close(self):
        """Closes the session of every thread that has sent through this transport."""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
            self._local = threading.local()
        for session in sessions:
            session.close()
