"""
Single-file repair actions between the local and the remote repository
"""
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

import paramiko

from ..core.command_runner import CommandRunner
from ..models import FileOutcome, RemoteFile
from ..utils.file_utils import _shell_quote, resolve_encoding
from ..utils.logging import log, vlog, warn

Reporter = Callable[[str], None]


class FileActions:
    """
    Every action returns a FileOutcome. Failures are reported once through
    *reporter* with the path and the raw error text, and never raised.
    """

    def __init__(self, runner: CommandRunner, reporter: Reporter = warn):
        self._runner = runner
        self._report = reporter

    def local_path(self, rel: str) -> Path:
        return self._runner.project_root / rel

    def _fail(self, rel: str, action: str, message: str, detail: str) -> FileOutcome:
        self._report(f"{message}:\n\n{detail.strip()}")
        return FileOutcome.failure(rel, action, detail.strip())

    # ── local side ──────────────────────────────────────────────────────────

    def create_local_file_from_remote(self, remote_file: RemoteFile) -> FileOutcome:
        rel = remote_file.path
        path = self.local_path(rel)
        existed = path.exists()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()
        except OSError as exc:
            return self._fail(rel, "added", f"Can't create new file {rel}", str(exc))

        try:
            _write_remote_content(path, remote_file)
        except (OSError, UnicodeError) as exc:
            if not existed:
                path.unlink(missing_ok=True)
            return self._fail(rel, "added", f"Can't write new file {rel}", str(exc))

        out = self._runner.run_locally(["git", "add", "--", rel])
        if out.exit_code != 0:
            return self._fail(rel, "added", f"Can't add file {rel} to git", out.stderr)

        log(f"  [ADD-LOCAL ✓] {rel}")
        return FileOutcome.success(rel, "added")

    def remove_local_file(self, remote_file: RemoteFile) -> FileOutcome:
        """Delete the local file and drop it from the git index."""
        rel = remote_file.path
        path = self.local_path(rel)
        if not path.exists():
            vlog(f"  [DEL-LOCAL] {rel} not found, nothing to remove")
            return FileOutcome.success(rel, "deleted")

        try:
            path.unlink()
        except OSError as exc:
            return self._fail(rel, "deleted", f"Can't remove file {rel}", str(exc))

        out = self._runner.run_locally(["git", "rm", "--cached", "--ignore-unmatch", "--quiet", "--", rel])
        if out.exit_code != 0:
            return self._fail(rel, "deleted", f"Can't remove file {rel} from git", out.stderr)

        log(f"  [DEL-LOCAL ✓] {rel}")
        return FileOutcome.success(rel, "deleted")

    def rewrite_local_file_with_remote_content(self, remote_file: RemoteFile,
                                               local_file: Optional[Path] = None) -> FileOutcome:
        rel = remote_file.path
        path = local_file or remote_file.local_file or self.local_path(rel)
        try:
            _write_remote_content(path, remote_file)
        except (OSError, UnicodeError) as exc:
            return self._fail(rel, "changed", f"Can't rewrite file {rel}", str(exc))

        log(f"  [PULL ✓] {rel}")
        return FileOutcome.success(rel, "changed")

    def rename_local_file(self, remote_file: RemoteFile) -> FileOutcome:
        """Mirror a remote rename: git mv <orig_path> <path> locally."""
        rel = remote_file.path
        orig = remote_file.orig_path
        if orig is None:
            return self._fail(rel, "renamed", f"Can't rename {rel}", "file was not renamed on the server")
        if not self.local_path(orig).exists():
            return self._fail(rel, "renamed", f"Can't rename {orig} to {rel}", f"local file {orig} not found")

        try:
            self.local_path(rel).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return self._fail(rel, "renamed", f"Can't rename {orig} to {rel}", str(exc))

        out = self._runner.run_locally(["git", "mv", "--", orig, rel])
        if out.exit_code != 0:
            return self._fail(rel, "renamed", f"Can't rename {orig} to {rel}", out.stderr)

        log(f"  [RENAME-LOCAL ✓] {orig} → {rel}")
        return FileOutcome.success(rel, "renamed")

    # ── remote side ─────────────────────────────────────────────────────────

    def remove_remote_file(self, rel: str) -> FileOutcome:
        out = self._runner.run_remotely(f"rm -- {_shell_quote(rel)}")
        if out.exit_code != 0:
            return self._fail(rel, "removed-remote", f"Can't remove remote file {rel}", out.stderr)
        log(f"  [DEL-REMOTE ✓] {rel}")
        return FileOutcome.success(rel, "removed-remote")

    def rewrite_remote_file_with_local_content(self, rel: str,
                                               local_file: Optional[Path] = None) -> FileOutcome:
        """
        Upload the local file over the remote one, stage it in the remote
        index and restore the permission bits the remote file had.
        """
        path = local_file or self.local_path(rel)
        quoted = _shell_quote(rel)

        perm_out = self._runner.run_remotely(f"stat -c %a -- {quoted}")
        perm = perm_out.stdout.strip() if perm_out.exit_code == 0 else None
        vlog(f"  [PUSH] {rel} permissions: {perm}")

        try:
            self._runner.upload(path, rel)
        except (IOError, paramiko.SSHException) as exc:
            return self._fail(rel, "uploaded", f"Can't upload file {rel}", str(exc))

        out = self._runner.run_remotely(f"git add -- {quoted}")
        if out.exit_code != 0:
            return self._fail(rel, "uploaded", f"Can't add remote file {rel} to git", out.stderr)

        if perm:
            chmod_out = self._runner.run_remotely(f"chmod {perm} -- {quoted}")
            if chmod_out.exit_code != 0:
                return self._fail(rel, "uploaded", f"Can't set permission {perm} for {rel}", chmod_out.stderr)

        log(f"  [PUSH ✓] {rel}")
        return FileOutcome.success(rel, "uploaded")

    def revert_remote_file_to_original(self, remote_file: RemoteFile) -> FileOutcome:
        """
        Undo a remote rename: move the file back to ``orig_path`` and push the
        local content over it. The rename is not rolled back if the upload fails.
        """
        rel = remote_file.path
        orig = remote_file.orig_path
        if orig is None:
            return self._fail(rel, "reverted", f"Can't revert {rel}", "file was not renamed on the server")

        out = self._runner.run_remotely(f"git mv -- {_shell_quote(rel)} {_shell_quote(orig)}")
        if out.exit_code != 0:
            return self._fail(rel, "reverted", f"Can't rename {rel} back to {orig}", out.stderr)
        log(f"  [RENAME-REMOTE ✓] {rel} → {orig}")

        local = self.local_path(orig)
        if not local.is_file():
            return FileOutcome.success(rel, "reverted")

        uploaded = self.rewrite_remote_file_with_local_content(orig, local)
        if not uploaded.ok:
            return FileOutcome.failure(rel, "reverted", uploaded.error)
        return FileOutcome.success(rel, "reverted")


def _write_remote_content(path: Path, remote_file: RemoteFile):
    """
    Replace *path* with the remote content: the raw server bytes when known,
    else the text in the declared encoding (no newline translation).
    The old content survives any failure.
    """
    data = remote_file.raw
    if data is None:
        data = remote_file.content.encode(resolve_encoding(remote_file.encoding))

    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        if path.exists():
            shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
