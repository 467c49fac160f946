"""Sync engine for neosync - reconcile, push and backup operations."""

from .backup import BackupOrchestrator, create_backup_folder
from .comparator import ActionSet, FileComparator, SyncAction, SyncDecision, reconcile
from .engine import SyncEngine
from .executor import (
    BoundedTaskExecutor,
    SyncReport,
    SyncTask,
    TaskKind,
    TaskOutcome,
    TaskResult,
)
from .git import GitRepository, WorkingTreeGuard
from .operations import SyncOperations
from .scanner import DirectoryScanner, LocalFile, RemoteFile, is_vcs_metadata
from .session import SyncSession

__all__ = [
    "SyncEngine",
    "SyncSession",
    "SyncOperations",
    "BackupOrchestrator",
    "create_backup_folder",
    "ActionSet",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "reconcile",
    "BoundedTaskExecutor",
    "SyncReport",
    "SyncTask",
    "TaskKind",
    "TaskOutcome",
    "TaskResult",
    "GitRepository",
    "WorkingTreeGuard",
    "DirectoryScanner",
    "LocalFile",
    "RemoteFile",
    "is_vcs_metadata",
]
