"""Utilities (logging, retry, file utilities)"""
from .logging import log, vlog, warn, set_verbose, is_verbose
from .retry import retried
from .file_utils import _md5_local, _md5_remote_many, _shell_quote, resolve_encoding

__all__ = [
    "log", "vlog", "warn", "set_verbose", "is_verbose",
    "retried",
    "_md5_local", "_md5_remote_many", "_shell_quote", "resolve_encoding",
]
