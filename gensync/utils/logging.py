"""
Console logging for gensync

Progress goes to stdout, warnings go to stderr so that `gensync run`
output stays clean when piped.
"""
import sys
from datetime import datetime

_verbose = False


def set_verbose(verbose: bool):
    """Set the verbose flag"""
    global _verbose
    _verbose = verbose


def is_verbose() -> bool:
    return _verbose


def log(msg: str, stream=None):
    """Log a message with timestamp"""
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", file=stream or sys.stdout, flush=True)


def vlog(msg: str):
    """Log a verbose message (only if verbose mode is enabled)"""
    if _verbose:
        log(msg)


def warn(msg: str):
    """Report a problem to the user; multi-line details are indented."""
    head, _, detail = msg.partition("\n")
    log(f"⚠  {head}", stream=sys.stderr)
    for line in detail.strip("\n").splitlines():
        print(f"           {line}", file=sys.stderr, flush=True)
