"""Operations (single-file actions, autogenerated files update)"""
from .file_actions import FileActions
from .reconciler import RemoteFileReconciler, ReconcileReport, update_autogenerated_files

__all__ = [
    "FileActions",
    "RemoteFileReconciler", "ReconcileReport", "update_autogenerated_files",
]
