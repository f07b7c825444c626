"""
Retry decorator for SSH transport operations
"""
import functools
import time

import paramiko

from .logging import log, warn
from .. import config as _cfg

# Transport problems worth another attempt.
TRANSIENT_ERRORS = (paramiko.SSHException, EOFError, OSError)
# Answers from the server, retrying will not change them.
PERMANENT_ERRORS = (FileNotFoundError, PermissionError, IsADirectoryError)


def retried(fn):
    """
    Decorator: retry fn up to RETRY_MAX times with exponential back-off.
    Only TRANSIENT_ERRORS are retried; anything else propagates at once.
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        delay = _cfg.RETRY_BASE_DELAY
        for attempt in range(1, _cfg.RETRY_MAX + 1):
            try:
                return fn(*args, **kwargs)
            except PERMANENT_ERRORS:
                raise
            except TRANSIENT_ERRORS as exc:
                if attempt >= _cfg.RETRY_MAX:
                    raise
                warn(f"{fn.__name__} failed (attempt {attempt}/{_cfg.RETRY_MAX}): {exc}")
                log(f"  retrying in {delay:.0f}s …")
                time.sleep(delay)
                delay = min(delay * 2, 60)

    return wrapper
