"""Core functionality"""
from .ssh_manager import SSHManager
from .command_runner import CommandRunner, Target
from .classifier import is_autogenerated
from .sync_checker import SyncStateChecker
from .dispatch import ForegroundLoop

__all__ = ["SSHManager", "CommandRunner", "Target", "is_autogenerated",
           "SyncStateChecker", "ForegroundLoop"]
