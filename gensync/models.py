"""
Data model shared by the checker, the classifier and the reconciler
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, NamedTuple, Optional

from . import config as _cfg


class Output(NamedTuple):
    """Result of one local or remote command."""
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class SyncState(Enum):
    IN_SYNC = "in-sync"
    FILES_NOT_SYNC = "files-not-sync"
    COMMITS_NOT_SYNC = "commits-not-sync"


class DiffStatus(Enum):
    ADDED = "added"
    CHANGED = "changed"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class RemoteFile:
    """
    One file as seen on the remote side during a sync pass.

    ``path`` is relative to the repository root. ``local_file`` is the
    absolute path of the local counterpart, or None when there is none.
    A file that no longer exists remotely has ``is_not_found`` set and
    carries no content.

    ``raw`` holds the bytes read from the server when they are known; they
    are written locally as-is so that both sides hash the same.
    """
    path: str
    content: str = ""
    orig_path: Optional[str] = None
    encoding: str = ""
    is_not_found: bool = False
    local_file: Optional[Path] = None
    raw: Optional[bytes] = field(default=None, repr=False)

    def __post_init__(self):
        if self.is_not_found and (self.content or self.raw):
            raise ValueError(f"{self.path}: a deleted remote file cannot carry content")
        if not self.encoding:
            object.__setattr__(self, "encoding", _cfg.DEFAULT_ENCODING)

    @property
    def is_renamed(self) -> bool:
        return self.orig_path is not None

    @property
    def status(self) -> DiffStatus:
        if self.is_not_found:
            return DiffStatus.DELETED
        if self.is_renamed:
            return DiffStatus.RENAMED
        if self.local_file is None:
            return DiffStatus.ADDED
        return DiffStatus.CHANGED


@dataclass(frozen=True)
class DiffEntry:
    remote_file: RemoteFile
    status: DiffStatus

    @classmethod
    def of(cls, remote_file: RemoteFile) -> "DiffEntry":
        return cls(remote_file, remote_file.status)


@dataclass(frozen=True)
class FileOutcome:
    """Per-file result of a repair action: ok when ``error`` is None."""
    path: str
    action: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, path: str, action: str) -> "FileOutcome":
        return cls(path, action)

    @classmethod
    def failure(cls, path: str, action: str, reason: str) -> "FileOutcome":
        return cls(path, action, reason or "unknown error")


@dataclass(frozen=True)
class AutogeneratedChangesStat:
    count_added: int = 0
    count_changed: int = 0
    count_deleted: int = 0

    def is_empty(self) -> bool:
        return self.count_added == 0 and self.count_changed == 0 and self.count_deleted == 0

    @property
    def total(self) -> int:
        return self.count_added + self.count_changed + self.count_deleted

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[FileOutcome]) -> "AutogeneratedChangesStat":
        """Count successful added/changed/deleted outcomes; failures are ignored."""
        counts = {"added": 0, "changed": 0, "deleted": 0}
        for outcome in outcomes:
            if outcome.ok and outcome.action in counts:
                counts[outcome.action] += 1
        return cls(counts["added"], counts["changed"], counts["deleted"])
