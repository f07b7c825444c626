"""
Batch update of autogenerated files from the remote repository
"""
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from ..core.classifier import is_autogenerated
from ..core.command_runner import CommandRunner
from ..core.dispatch import ForegroundLoop
from ..core.sync_checker import SyncStateChecker
from ..errors import SyncCheckError
from ..models import AutogeneratedChangesStat, FileOutcome, RemoteFile, SyncState
from ..utils.file_utils import resolve_encoding
from ..utils.logging import log, vlog, warn
from .file_actions import FileActions, Reporter

OnReady = Callable[[AutogeneratedChangesStat], None]

_project_locks: dict[Path, threading.Lock] = {}
_project_locks_guard = threading.Lock()


def _lock_for(root: Path) -> threading.Lock:
    key = root.resolve()
    with _project_locks_guard:
        return _project_locks.setdefault(key, threading.Lock())


@dataclass
class ReconcileReport:
    """Everything one pass did; ``stat`` counts the successful outcomes only."""
    outcomes: list[FileOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def stat(self) -> AutogeneratedChangesStat:
        return AutogeneratedChangesStat.from_outcomes(self.outcomes)

    @property
    def failures(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if not o.ok]


class RemoteFileReconciler:
    """
    Brings local autogenerated files in line with the server.

    Hand-written files are never touched. One file failing does not stop
    the others, and on_ready is called exactly once per pass.
    """

    def __init__(self, checker: SyncStateChecker, actions: Optional[FileActions] = None,
                 reporter: Reporter = warn):
        self._checker = checker
        self._actions = actions or FileActions(checker.runner, reporter)
        self._report = reporter
        self._lock = _lock_for(checker.runner.project_root)

    @classmethod
    def for_runner(cls, runner: CommandRunner, reporter: Reporter = warn) -> "RemoteFileReconciler":
        return cls(SyncStateChecker.for_project(runner), FileActions(runner, reporter))

    @property
    def actions(self) -> FileActions:
        return self._actions

    def reconcile(self, on_ready: OnReady = lambda stat: None,
                  cancel: Optional[threading.Event] = None) -> ReconcileReport:
        """
        One reconciliation pass. Passes on the same project are serialized.
        *cancel* is checked between files; files not yet reached are left alone.
        """
        with self._lock:
            report = ReconcileReport()
            try:
                self._run_pass(report, cancel)
            except SyncCheckError as exc:
                self._report(f"Can't compare with the server:\n\n{exc}")
            except Exception as exc:
                self._report(f"Update of autogenerated files failed:\n\n{type(exc).__name__}: {exc}")
            finally:
                stat = report.stat
                log(f"[update] added={stat.count_added}  changed={stat.count_changed}  "
                    f"deleted={stat.count_deleted}  failed={len(report.failures)}")
                on_ready(stat)
            return report

    def reconcile_in_background(self, loop: ForegroundLoop, on_ready: OnReady,
                                cancel: Optional[threading.Event] = None) -> threading.Thread:
        """Run the pass on a worker; on_ready(stat) is executed by *loop*."""
        return loop.submit(lambda: self.reconcile(cancel=cancel),
                           lambda report: on_ready(report.stat),
                           name="gensync-update")

    # ── pass ────────────────────────────────────────────────────────────────

    def _run_pass(self, report: ReconcileReport, cancel: Optional[threading.Event]):
        if self._checker.current_state() is not SyncState.FILES_NOT_SYNC:
            log("[update] nothing to update")
            return

        diff_files = self._checker.get_diff_files()
        log(f"[update] {len(diff_files)} file(s) differ from the server")
        try:
            for remote_file in diff_files:
                if cancel is not None and cancel.is_set():
                    warn("Update cancelled, remaining files left untouched.")
                    report.cancelled = True
                    break
                try:
                    outcome = self._process(remote_file)
                except Exception as exc:
                    self._report(f"Can't update file {remote_file.path}:\n\n{exc}")
                    outcome = FileOutcome.failure(remote_file.path, remote_file.status.value, str(exc))
                report.outcomes.append(outcome)
        finally:
            self._checker.mark_dirty()

    def _process(self, remote_file: RemoteFile) -> FileOutcome:
        rel = remote_file.path
        local_path = self._actions.local_path(rel)

        if not local_path.is_file():
            if remote_file.is_not_found:
                # gone on both sides
                return FileOutcome.success(rel, "skipped")
            if not is_autogenerated(rel, lambda: remote_file.content):
                vlog(f"  [SKIP] {rel} (not autogenerated)")
                return FileOutcome.success(rel, "skipped")
            return self._actions.create_local_file_from_remote(remote_file)

        def content() -> str:
            if remote_file.is_not_found:
                return _read_local(local_path, remote_file.encoding)
            return remote_file.content

        if not is_autogenerated(rel, content):
            vlog(f"  [SKIP] {rel} (not autogenerated)")
            return FileOutcome.success(rel, "skipped")

        if remote_file.is_not_found:
            return self._actions.remove_local_file(remote_file)
        return self._actions.rewrite_local_file_with_remote_content(remote_file, local_path)


def _read_local(path: Path, encoding: str) -> str:
    return path.read_text(encoding=resolve_encoding(encoding), errors="replace")


def update_autogenerated_files(on_ready: Callable[[int, int, int], None] = lambda a, c, d: None,
                               runner: Optional[CommandRunner] = None,
                               reporter: Reporter = warn) -> AutogeneratedChangesStat:
    """
    Download every autogenerated file that changed, appeared or disappeared
    on the server. on_ready receives (added, changed, deleted); all zeros
    when there was nothing to sync.
    """
    runner = runner or CommandRunner()
    reconciler = RemoteFileReconciler.for_runner(runner, reporter)
    report = reconciler.reconcile(
        lambda stat: on_ready(stat.count_added, stat.count_changed, stat.count_deleted)
    )
    return report.stat
