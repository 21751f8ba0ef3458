import json
import threading

from ..config import logger

_write_lock = threading.Lock()


def format_result(result, show_len=False, no_status=False):
    """'GET 200 [1234] http://host/a', minus the parts switched off."""
    parts = [result.method]
    if not no_status:
        parts.append(str(result.status))
    if show_len:
        parts.append(f"[{result.length}]")
    parts.append(result.url)
    line = ' '.join(parts)
    if not result.hit:
        line += ' (noise)'
    return line


def write_to_output(path, result, show_len=False, no_status=False):
    if not path:
        return
    try:
        with _write_lock:
            with open(path, 'a') as f:
                f.write(format_result(result, show_len, no_status) + '\n')
    except OSError as e:
        logger.error(f" [!] Error writing {result.url} to {path}: {e}")


def export_jsonl(path, results):
    if not path:
        return 0
    count = 0
    with _write_lock:
        with open(path, 'w') as f:
            for result in results:
                f.write(json.dumps(result.to_dict()) + '\n')
                count += 1
    logger.info(f"[*] JSONL export complete to {path} ({count} results)")
    return count
