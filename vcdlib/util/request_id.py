"""
Client request id generation
"""

import itertools
import threading
from datetime import datetime

_counter = itertools.count(1)
_lock = threading.Lock()


def default_request_id() -> str:
    """Return '<counter>-<YYYY-MM-DD-HH-MM-SS-mmm>-', unique per process"""
    with _lock:
        value = next(_counter)
    now = datetime.now()
    stamp = now.strftime("%Y-%m-%d-%H-%M-%S-") + f"{now.microsecond // 1000:03d}"
    return f"{value}-{stamp}-"
