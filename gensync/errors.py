"""
Exceptions raised by gensync
"""
from .models import Output


class GensyncError(Exception):
    """Base class for gensync errors."""


class CommandFailed(GensyncError):
    """A local or remote command exited with a non-zero status."""

    def __init__(self, command: str, output: Output):
        self.command = command
        self.output = output
        super().__init__(
            f"command exited {output.exit_code}: {command!r}\nstderr: {output.stderr.strip()}"
        )


class SyncCheckError(GensyncError):
    """The local/remote comparison could not be computed."""
