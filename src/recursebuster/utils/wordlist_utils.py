import os

from ..config import logger
from ..errors import ConfigError

ENCODINGS = ('utf-8-sig', 'utf-8', 'latin-1')


def read_lines(path, what='file'):
    """Non-empty stripped lines of path, trying a few encodings (utf-8-sig drops a BOM)."""
    if not os.path.isfile(path):
        raise ConfigError(f"{what.capitalize()} not found: {path}")
    for enc in ENCODINGS:
        try:
            with open(path, 'r', encoding=enc) as f:
                return [line.strip() for line in f if line.strip()]
        except UnicodeDecodeError:
            continue
    raise ConfigError(f"Could not decode {what} {path}")


def load_wordlist(path):
    words = [w for w in read_lines(path, 'wordlist') if not w.startswith('#')]
    if not words:
        logger.warning(f" [!] Wordlist {path} is empty, only base URLs will be requested.")
    else:
        logger.info(f"[*] Loaded {len(words)} words from {path}")
    return words


def load_blacklist(path):
    """Absolute URLs that must never be requested, one per line."""
    if not path:
        return frozenset()
    urls = frozenset(u for u in read_lines(path, 'blacklist') if not u.startswith('#'))
    logger.info(f"[*] Loaded {len(urls)} blacklisted URLs from {path}")
    return urls


def load_body(path):
    if not path:
        return ''
    if not os.path.isfile(path):
        raise ConfigError(f"Body file not found: {path}")
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


def load_url_list(path):
    return [u for u in read_lines(path, 'URL list') if not u.startswith('#')]
