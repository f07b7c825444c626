"""
Runs commands on the local machine or on the remote server
"""
import subprocess
import threading
import time
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Union

import paramiko

from .. import config as _cfg
from ..models import Output
from ..utils.file_utils import _shell_quote
from ..utils.logging import vlog, warn
from .ssh_manager import SSHManager

LineListener = Callable[[str, bool], None]
Command = Union[str, list]

# exit code reported when no SSH session could be established
NO_SESSION_EXIT_CODE = 2
# exit code reported when a local executable could not be started
NOT_STARTED_EXIT_CODE = 127


class Target(Enum):
    LOCAL = "local"
    REMOTE = "remote"


class CommandRunner:
    """
    Local commands run in the project root (config.LOCAL_ROOT), remote ones
    in config.REMOTE_ROOT through the shared SSHManager.
    """

    def __init__(self, ssh: Optional[SSHManager] = None, project_root: Optional[Path] = None):
        self.ssh = ssh if ssh is not None else SSHManager()
        self._project_root = project_root
        self._proc: Optional[subprocess.Popen] = None
        self._proc_lock = threading.Lock()

    @property
    def project_root(self) -> Path:
        return Path(self._project_root if self._project_root is not None else _cfg.LOCAL_ROOT)

    def run(self, target: Target, command: Command, timeout: Optional[float] = None,
            listener: Optional[LineListener] = None) -> Output:
        if target is Target.REMOTE:
            if not isinstance(command, str):
                command = " ".join(_shell_quote(str(c)) for c in command)
            return self.run_remotely(command, timeout=timeout, listener=listener)
        return self.run_locally(command, listener=listener, timeout=timeout)

    # ── local ───────────────────────────────────────────────────────────────

    def run_locally(self, command: Command, trim_output: bool = True,
                    listener: Optional[LineListener] = None,
                    timeout: Optional[float] = None,
                    redirect_to: Optional[Path] = None) -> Output:
        """
        Run *command* in the project root and wait for it.

        A string command is split on whitespace; pass a list for arguments
        containing spaces. When the wait expires the child is killed and its
        real exit status is reported.
        """
        args = command.split() if isinstance(command, str) else [str(c) for c in command]
        timeout = _cfg.LOCAL_TIMEOUT if timeout is None else timeout
        vlog(f"[local] {' '.join(args)}  (cwd: {self.project_root})")
        start = time.monotonic()

        out_file = open(redirect_to, "w", encoding="utf-8") if redirect_to is not None else None
        try:
            try:
                proc = subprocess.Popen(
                    args,
                    cwd=str(self.project_root),
                    stdin=subprocess.DEVNULL,
                    stdout=out_file if out_file is not None else subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                )
            except OSError as exc:
                warn(f"cannot start {args[0] if args else '<empty>'}: {exc}")
                return Output("", str(exc), NOT_STARTED_EXIT_CODE)

            with self._proc_lock:
                self._proc = proc
            try:
                if listener is None:
                    out, err = self._collect(proc, timeout)
                else:
                    out, err = self._stream(proc, timeout, listener)
            finally:
                with self._proc_lock:
                    self._proc = None
        finally:
            if out_file is not None:
                out_file.close()

        vlog(f"[local] exited {proc.returncode} in {(time.monotonic() - start) * 1000:.0f}ms")
        out = out or ""
        err = err or ""
        if trim_output:
            out, err = out.strip(), err.strip()
        return Output(out, err, proc.returncode)

    @staticmethod
    def _collect(proc: subprocess.Popen, timeout: float) -> tuple[str, str]:
        try:
            return proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            warn(f"local command did not finish in {timeout}s, killing it")
            proc.kill()
            return proc.communicate()

    @staticmethod
    def _stream(proc: subprocess.Popen, timeout: float,
                listener: LineListener) -> tuple[str, str]:
        collected: dict[bool, list[str]] = {False: [], True: []}

        def pump(stream, is_stderr: bool):
            for line in iter(stream.readline, ""):
                collected[is_stderr].append(line)
                listener(line.rstrip("\n"), is_stderr)
            stream.close()

        pumps = [threading.Thread(target=pump, args=(proc.stderr, True), daemon=True)]
        if proc.stdout is not None:
            pumps.append(threading.Thread(target=pump, args=(proc.stdout, False), daemon=True))
        for t in pumps:
            t.start()
        try:
            proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            warn(f"local command did not finish in {timeout}s, killing it")
            proc.kill()
            proc.wait()
        for t in pumps:
            t.join()
        return "".join(collected[False]), "".join(collected[True])

    def stop(self) -> bool:
        """Kill the local command currently running, if any."""
        with self._proc_lock:
            proc = self._proc
        if proc is None or proc.poll() is not None:
            return False
        proc.kill()
        warn("local command stopped")
        return True

    # ── remote ──────────────────────────────────────────────────────────────

    def run_remotely(self, command: str, timeout: Optional[float] = None,
                     listener: Optional[LineListener] = None) -> Output:
        """
        Run *command* in the remote project root.
        Returns ("", "", 2) when no SSH session can be established.
        """
        timeout = _cfg.REMOTE_TIMEOUT if timeout is None else timeout
        full = f"cd {_shell_quote(str(_cfg.REMOTE_ROOT))} && {command}"
        vlog(f"[remote] {command}  (cwd: {_cfg.REMOTE_ROOT})")
        start = time.monotonic()

        try:
            self.ssh.ensure_connected()
        except (paramiko.SSHException, OSError) as exc:
            warn(f"[SSH] no session: {exc}")
            return Output("", "", NO_SESSION_EXIT_CODE)

        try:
            out, err, rc = self.ssh.exec(full, timeout=timeout, listener=listener)
        except TimeoutError as exc:
            warn(str(exc))
            return Output("", str(exc), -1)
        except (paramiko.SSHException, OSError) as exc:
            warn(f"[SSH] session lost: {exc}")
            return Output("", str(exc), NO_SESSION_EXIT_CODE)

        vlog(f"[remote] exited {rc} in {(time.monotonic() - start) * 1000:.0f}ms")
        return Output(out, err, rc)

    def remote_path(self, rel: str) -> str:
        return str(PurePosixPath(_cfg.REMOTE_ROOT) / rel)

    def read_remote(self, rel: str) -> bytes:
        """Raw bytes of a file under the remote project root."""
        return self.ssh.sftp_read_bytes(self.remote_path(rel))

    def upload(self, local: Path, rel: str):
        """Copy a local file over its remote counterpart."""
        self.ssh.sftp_put(str(local), self.remote_path(rel))

    def close(self):
        self.ssh.disconnect()
