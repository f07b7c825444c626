"""
Fakes for the SSH / git collaborators used across the test modules.
"""
import hashlib
import shlex
from pathlib import Path
from typing import Callable, Optional

from gensync.models import Output

OK = Output("", "", 0)


class FakeRunner:
    """
    Stands in for CommandRunner: records every command and answers through
    optional handlers. Unhandled commands succeed with empty output.
    """

    def __init__(self, root: Path,
                 local: Optional[Callable[[list], Optional[Output]]] = None,
                 remote: Optional[Callable[[str], Optional[Output]]] = None):
        self.project_root = Path(root)
        self.local_calls: list[list] = []
        self.remote_calls: list[str] = []
        self.uploads: list[tuple[Path, str]] = []
        self.remote_files: dict[str, bytes] = {}
        self._local = local
        self._remote = remote

    def run_locally(self, command, trim_output=True, listener=None, timeout=None, redirect_to=None):
        args = command.split() if isinstance(command, str) else list(command)
        self.local_calls.append(args)
        out = self._local(args) if self._local else None
        return out or OK

    def run_remotely(self, command, timeout=None, listener=None):
        self.remote_calls.append(command)
        out = self._remote(command) if self._remote else None
        return out or OK

    def read_remote(self, rel: str) -> bytes:
        if rel not in self.remote_files:
            raise FileNotFoundError(rel)
        return self.remote_files[rel]

    def upload(self, local: Path, rel: str):
        self.uploads.append((local, rel))
        self.remote_files[rel] = Path(local).read_bytes()

    def close(self):
        pass


class FakeRemoteRepo:
    """
    A remote working tree with the same HEAD as the local one.
    ``status`` holds the porcelain (xy, path[, orig]) entries git would report.
    """

    def __init__(self, runner: FakeRunner, head: str = "abc123"):
        self.runner = runner
        self.head = head
        self.local_head = head
        self.status: list[tuple] = []
        self.local_status: list[tuple] = []

    @staticmethod
    def porcelain(entries: list[tuple]) -> str:
        parts = []
        for entry in entries:
            xy, path = entry[0], entry[1]
            parts.append(f"{xy} {path}")
            if len(entry) > 2:
                parts.append(entry[2])
        return "".join(p + "\0" for p in parts)

    def remote(self, cmd: str) -> Optional[Output]:
        if cmd == "git rev-parse HEAD":
            return Output(self.head + "\n", "", 0)
        if cmd.startswith("git status"):
            return Output(self.porcelain(self.status), "", 0)
        if cmd.startswith("md5sum"):
            names = [t for t in shlex.split(cmd)[2:] if not t.startswith("2>")]
            lines = [
                f"{hashlib.md5(self.runner.remote_files[n]).hexdigest()}  {n}"
                for n in names if n in self.runner.remote_files
            ]
            rc = 0 if len(lines) == len(names) else 1
            return Output("\n".join(lines) + "\n", "", rc)
        return None

    def local(self, args: list) -> Optional[Output]:
        if args[:3] == ["git", "rev-parse", "HEAD"]:
            return Output(self.local_head + "\n", "", 0)
        if args[:2] == ["git", "status"]:
            return Output(self.porcelain(self.local_status), "", 0)
        return None

    def install(self):
        self.runner._remote = self.remote
        self.runner._local = self.local
        return self
