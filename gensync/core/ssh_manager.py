"""
SSH connection manager with auto-reconnect and keep-alive
"""
import socket
from typing import Callable, Optional
import paramiko
from .. import config as _cfg
from ..utils.logging import log, vlog
from ..utils.retry import retried

LineListener = Callable[[str, bool], None]


class SSHManager:
    """
    Wraps paramiko SSHClient + SFTPClient.
    Reconnects when the transport has gone away.
    Sends SSH keep-alives so long pauses between commands don't drop the session.
    """

    def __init__(self):
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    # ── connection ─────────────────────────────────────────────────────────

    @retried
    def connect(self):
        if self._ssh:
            try:
                self._ssh.get_transport().send_ignore()  # test if alive
                return
            except Exception:
                self._close_quietly()

        log(f"[SSH] connecting to {_cfg.SSH_USER}@{_cfg.SSH_HOST}:{_cfg.SSH_PORT} …")
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        kw: dict = dict(hostname=_cfg.SSH_HOST, port=_cfg.SSH_PORT, username=_cfg.SSH_USER,
                        timeout=20, banner_timeout=30, auth_timeout=30)
        if _cfg.SSH_KEY_PATH:
            kw["key_filename"] = _cfg.SSH_KEY_PATH
        if _cfg.SSH_PASSWORD:
            kw["password"] = _cfg.SSH_PASSWORD

        client.connect(**kw)

        # Keep-alive: send a NOP every 30s
        client.get_transport().set_keepalive(30)

        self._ssh = client
        self._sftp = client.open_sftp()
        log("[SSH] connected ✓")

    def _close_quietly(self):
        try:
            if self._sftp:
                self._sftp.close()
        except Exception:
            pass
        try:
            if self._ssh:
                self._ssh.close()
        except Exception:
            pass
        self._ssh = None
        self._sftp = None

    def disconnect(self):
        if self._ssh is None:
            return
        self._close_quietly()
        log("[SSH] disconnected.")

    def ensure_connected(self):
        """Call before any remote operation."""
        try:
            if self._ssh and self._ssh.get_transport().is_active():
                return
        except Exception:
            pass
        self.connect()

    # ── raw exec ────────────────────────────────────────────────────────────

    def exec(self, cmd: str, timeout: float = 30,
             listener: Optional[LineListener] = None) -> tuple[str, str, int]:
        """
        Run a command; return (stdout, stderr, exit_status).
        Non-zero exit is returned, not raised. Raises TimeoutError when the
        command produces no result within *timeout* seconds.
        """
        self.ensure_connected()
        _, stdout, stderr = self._ssh.exec_command(cmd, timeout=timeout)
        channel = stdout.channel
        try:
            if listener is None:
                out = stdout.read().decode("utf-8", errors="replace")
            else:
                lines = []
                for line in iter(stdout.readline, ""):
                    lines.append(line)
                    listener(line.rstrip("\n"), False)
                out = "".join(lines)
            err = stderr.read().decode("utf-8", errors="replace")
            if listener is not None:
                for line in err.splitlines():
                    listener(line, True)
        except socket.timeout as exc:
            channel.close()
            raise TimeoutError(f"remote command timed out after {timeout}s: {cmd!r}") from exc
        rc = channel.recv_exit_status()
        vlog(f"[SSH] {cmd!r} exited {rc}")
        return out, err, rc

    # ── sftp ops ────────────────────────────────────────────────────────────

    @retried
    def sftp_put(self, local: str, remote: str):
        self.ensure_connected()
        self._sftp.put(local, remote)

    @retried
    def sftp_read_bytes(self, remote: str) -> bytes:
        self.ensure_connected()
        with self._sftp.open(remote, "rb") as f:
            return f.read()
