from .config import Config
from .errors import RecurseBusterError, ConfigError, TransportError
from .enumerator import DirectoryEnumerator

__version__ = "0.1.0"
