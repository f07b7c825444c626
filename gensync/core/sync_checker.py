"""
Compares the local repository with the remote one
"""
import threading
from pathlib import Path
from typing import Optional

import paramiko

from .. import config as _cfg
from ..errors import CommandFailed, SyncCheckError
from ..models import DiffEntry, RemoteFile, SyncState
from ..utils.file_utils import _md5_local, _md5_remote_many, resolve_encoding
from ..utils.logging import log, vlog
from .command_runner import CommandRunner

GIT_STATUS = ["git", "status", "--porcelain", "-z", "--untracked-files=all"]


def parse_porcelain(output: str) -> list[tuple[str, str, Optional[str]]]:
    """
    Parse `git status --porcelain -z` into (xy, path, orig_path) tuples.
    Renames and copies are followed by an extra NUL-terminated source path.
    """
    entries: list[tuple[str, str, Optional[str]]] = []
    fields = output.split("\0")
    i = 0
    while i < len(fields):
        field = fields[i]
        i += 1
        if len(field) < 4:
            continue
        xy, path = field[:2], field[3:]
        orig = None
        if "R" in xy or "C" in xy:
            if i < len(fields):
                orig = fields[i] or None
            i += 1
        entries.append((xy, path, orig))
    return entries


def decode_remote(raw: bytes) -> tuple[str, str]:
    """
    Decode remote bytes with the declared encoding, then the legacy one.
    Returns (encoding, text); text keeps U+FFFD where neither fits.
    """
    declared = resolve_encoding(_cfg.DEFAULT_ENCODING)
    for name in (declared, resolve_encoding(_cfg.FALLBACK_ENCODING)):
        try:
            return name, raw.decode(name)
        except UnicodeDecodeError:
            continue
    vlog(f"  [check] undecodable bytes, keeping {declared} with replacements")
    return declared, raw.decode(declared, errors="replace")


class SyncStateChecker:
    """
    Computes the sync state of one project.

    Every current_state() call recomputes from scratch; the result is kept
    as a snapshot that get_diff_files() serves until mark_dirty() drops it.
    """

    _instances: dict[Path, "SyncStateChecker"] = {}
    _instances_lock = threading.Lock()

    def __init__(self, runner: CommandRunner):
        self._runner = runner
        self._snapshot: Optional[tuple[SyncState, list[RemoteFile]]] = None
        self._lock = threading.Lock()

    @classmethod
    def for_project(cls, runner: CommandRunner) -> "SyncStateChecker":
        """The process-wide checker for the runner's project root."""
        key = runner.project_root.resolve()
        with cls._instances_lock:
            checker = cls._instances.get(key)
            if checker is None:
                checker = cls._instances[key] = cls(runner)
            return checker

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    # ── public ──────────────────────────────────────────────────────────────

    def current_state(self) -> SyncState:
        with self._lock:
            self._snapshot = self._compute()
            state, files = self._snapshot
        log(f"[check] state={state.value}  diff_files={len(files)}")
        return state

    def get_diff_files(self) -> list[RemoteFile]:
        """Differing files from the last check; empty unless FILES_NOT_SYNC."""
        if self._snapshot is None:
            self.current_state()
        return list(self._snapshot[1])

    def get_diff_entries(self) -> list[DiffEntry]:
        return [DiffEntry.of(f) for f in self.get_diff_files()]

    def find_diff_file(self, rel: str) -> Optional[RemoteFile]:
        norm = rel.replace("\\", "/")
        return next((f for f in self.get_diff_files() if norm in (f.path, f.orig_path)), None)

    def mark_dirty(self):
        with self._lock:
            self._snapshot = None

    # ── computation ─────────────────────────────────────────────────────────

    def _compute(self) -> tuple[SyncState, list[RemoteFile]]:
        local_head = self._local_git(["git", "rev-parse", "HEAD"]).strip()
        remote_head = self._remote_git("git rev-parse HEAD").strip()
        if local_head != remote_head:
            vlog(f"  [check] HEAD local={local_head[:10]} remote={remote_head[:10]}")
            return SyncState.COMMITS_NOT_SYNC, []

        local_changes = parse_porcelain(self._local_git(GIT_STATUS))
        remote_changes = parse_porcelain(self._remote_git(" ".join(GIT_STATUS)))

        renames = {path: orig for _, path, orig in remote_changes if orig}
        # The source of a remote rename is gone on the server but may still
        # be tracked and clean locally.
        paths = sorted({p for _, p, _ in local_changes} | {p for _, p, _ in remote_changes}
                       | set(renames.values()))
        if not paths:
            return SyncState.IN_SYNC, []

        remote_md5 = _md5_remote_many(self._runner, paths)
        root = self._runner.project_root

        files: list[RemoteFile] = []
        for rel in paths:
            local_path = root / rel
            local_md5 = _md5_local(local_path) if local_path.is_file() else None
            r_md5 = remote_md5.get(rel)
            if local_md5 == r_md5:
                vlog(f"  [SAME] {rel}")
                continue
            files.append(self._remote_file(rel, renames.get(rel), r_md5 is not None,
                                           local_path if local_md5 is not None else None))

        return (SyncState.FILES_NOT_SYNC if files else SyncState.IN_SYNC), files

    def _remote_file(self, rel: str, orig: Optional[str], exists_remotely: bool,
                     local_path: Optional[Path]) -> RemoteFile:
        if not exists_remotely:
            return RemoteFile(path=rel, orig_path=orig, is_not_found=True, local_file=local_path)

        try:
            raw = self._runner.read_remote(rel)
        except (IOError, EOFError, paramiko.SSHException) as exc:
            raise SyncCheckError(f"cannot read remote {rel}: {exc}") from exc
        encoding, content = decode_remote(raw)
        return RemoteFile(path=rel, orig_path=orig, content=content, encoding=encoding,
                          local_file=local_path, raw=raw)

    def _local_git(self, args: list) -> str:
        out = self._runner.run_locally(args, trim_output=False)
        if out.exit_code != 0:
            raise SyncCheckError(f"local git failed: {out.stderr.strip()}") from CommandFailed(" ".join(args), out)
        return out.stdout

    def _remote_git(self, cmd: str) -> str:
        out = self._runner.run_remotely(cmd, timeout=_cfg.REMOTE_SCAN_TIMEOUT)
        if out.exit_code != 0:
            raise SyncCheckError(f"remote git failed: {out.stderr.strip()}") from CommandFailed(cmd, out)
        return out.stdout
