"""
File utilities (MD5, encodings)
"""
import codecs
import hashlib
from pathlib import Path
from typing import TYPE_CHECKING
from .. import config as _cfg

if TYPE_CHECKING:
    from ..core.command_runner import CommandRunner

MD5_BATCH_SIZE = 200


def _md5_local(path: Path) -> str:
    """Compute MD5 hash of a local file"""
    h = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def _md5_remote_many(runner: "CommandRunner", rel_paths: list[str]) -> dict[str, str]:
    """
    Return {rel_path: md5} for the remote files that exist.
    Missing files are simply absent from the result (md5sum reports them
    on stderr and exits non-zero, which is expected here).
    """
    result: dict[str, str] = {}
    # Chunked to stay well below ARG_MAX
    for i in range(0, len(rel_paths), MD5_BATCH_SIZE):
        quoted = " ".join(_shell_quote(r) for r in rel_paths[i:i + MD5_BATCH_SIZE])
        out = runner.run_remotely(f"md5sum -- {quoted} 2>/dev/null",
                                  timeout=_cfg.REMOTE_SCAN_TIMEOUT).stdout
        for line in out.splitlines():
            # md5sum output: "<hash>  <filename>"
            parts = line.split("  ", 1)
            if len(parts) != 2:
                continue
            digest, name = parts
            result[name] = digest.strip()
    return result


def _shell_quote(value: str) -> str:
    """Single-quote a value for a POSIX shell."""
    return "'" + value.replace("'", "'\\''") + "'"


def resolve_encoding(name: str) -> str:
    """Return *name* if it is a known codec, else the legacy fallback."""
    try:
        return codecs.lookup(name).name
    except (LookupError, TypeError):
        return _cfg.FALLBACK_ENCODING
