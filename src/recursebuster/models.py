from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Optional, Tuple
from urllib.parse import urlsplit

from requests.structures import CaseInsensitiveDict


class RootState(Enum):
    PENDING     = auto()
    BASELINING  = auto()
    ENUMERATING = auto()
    COMPLETE    = auto()


@dataclass
class Host:
    scheme: str
    netloc: str
    # (directory URL, method) -> baseline slot, owned by the canary detector
    canaries: Dict[Tuple[str, str], object] = field(default_factory=dict, repr=False, compare=False)

    @property
    def base(self) -> str:
        return f"{self.scheme}://{self.netloc}"

    def owns(self, url: str) -> bool:
        parts = urlsplit(url)
        return parts.scheme == self.scheme and parts.netloc == self.netloc


@dataclass(frozen=True)
class Job:
    url: str
    method: str
    directory: str
    depth: int = 0
    word: str = ''


@dataclass
class HTTPResponse:
    status: int
    headers: CaseInsensitiveDict
    body: bytes = b''
    url: str = ''

    @property
    def length(self) -> int:
        if self.body:
            return len(self.body)
        try:
            return int(self.headers.get('Content-Length', 0))
        except (TypeError, ValueError):
            return 0

    @property
    def length_known(self) -> bool:
        """False for an empty body without a usable Content-Length (HEAD, chunked)."""
        if self.body:
            return True
        try:
            int(self.headers.get('Content-Length'))
        except (TypeError, ValueError):
            return False
        return True

    @property
    def location(self) -> Optional[str]:
        return self.headers.get('Location')

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and bool(self.location)


@dataclass(frozen=True)
class CanarySignature:
    status: int
    length: int
    digest: str
    sample: bytes = b''
    failed: bool = False
    sized: bool = True


@dataclass(frozen=True)
class ConfirmedResult:
    url: str
    method: str
    status: int
    length: int
    headers: Dict[str, str]
    hit: bool = True
    directory: str = ''
    depth: int = 0

    def to_dict(self):
        return {
            'url': self.url, 'method': self.method, 'status': self.status,
            'length': self.length, 'hit': self.hit, 'depth': self.depth,
            'headers': dict(self.headers),
        }


@dataclass(frozen=True)
class LogEvent:
    level: int
    message: str
