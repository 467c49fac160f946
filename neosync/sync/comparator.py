"""File comparison logic for sync operations."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .scanner import LocalFile, RemoteFile


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    DELETE_REMOTE = "delete_remote"
    """Delete remote file"""

    SKIP = "skip"
    """Skip file (no action needed)"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    local_file: Optional[LocalFile]
    """Local file (if exists)"""

    remote_file: Optional[RemoteFile]
    """Remote file (if exists)"""

    relative_path: str
    """Relative path of the file"""


@dataclass(frozen=True)
class ActionSet:
    """Uploads and deletes that make the remote match the local tree.

    Both tuples are sorted and no path appears in both.
    """

    uploads: tuple[str, ...] = ()
    deletes: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.uploads and not self.deletes

    def __len__(self) -> int:
        return len(self.uploads) + len(self.deletes)

    def to_dict(self) -> dict:
        return {"uploads": list(self.uploads), "deletes": list(self.deletes)}


class FileComparator:
    """Compares local and remote inventories by content hash."""

    def compare_files(
        self,
        local_files: Mapping[str, LocalFile],
        remote_files: Mapping[str, RemoteFile],
    ) -> list[SyncDecision]:
        """Compare local and remote files and determine sync actions.

        Args:
            local_files: Dictionary mapping relative_path to LocalFile
            remote_files: Dictionary mapping relative_path to RemoteFile

        Returns:
            List of SyncDecision objects, sorted by path
        """
        all_paths = set(local_files) | set(remote_files)
        return [
            self._compare_single_file(
                path, local_files.get(path), remote_files.get(path)
            )
            for path in sorted(all_paths)
        ]

    def _compare_single_file(
        self,
        path: str,
        local_file: Optional[LocalFile],
        remote_file: Optional[RemoteFile],
    ) -> SyncDecision:
        """Compare a single file and determine action."""
        if local_file is None:
            return SyncDecision(
                action=SyncAction.DELETE_REMOTE,
                reason="Deleted locally",
                local_file=None,
                remote_file=remote_file,
                relative_path=path,
            )

        if remote_file is None:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="New local file",
                local_file=local_file,
                remote_file=None,
                relative_path=path,
            )

        if local_file.sha1 != remote_file.sha1:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="Content changed",
                local_file=local_file,
                remote_file=remote_file,
                relative_path=path,
            )

        return SyncDecision(
            action=SyncAction.SKIP,
            reason="Unchanged",
            local_file=local_file,
            remote_file=remote_file,
            relative_path=path,
        )

    def reconcile(
        self,
        local_files: Mapping[str, LocalFile],
        remote_files: Mapping[str, RemoteFile],
    ) -> ActionSet:
        """Compute the uploads and deletes needed to mirror local to remote.

        A local path is uploaded when it is missing remotely or its hash
        differs. A remote path is deleted when it is missing locally; an
        empty local inventory therefore deletes every remote file.

        Examples:
            >>> from pathlib import Path
            >>> local = {"a.html": LocalFile(Path("/s/a.html"), "a.html", 1, "h1"),
            ...          "b.html": LocalFile(Path("/s/b.html"), "b.html", 1, "h2")}
            >>> remote = {"a.html": RemoteFile("a.html", "h1"),
            ...           "c.html": RemoteFile("c.html", "h9")}
            >>> FileComparator().reconcile(local, remote)
            ActionSet(uploads=('b.html',), deletes=('c.html',))
        """
        uploads = sorted(
            path
            for path, local_file in local_files.items()
            if path not in remote_files or remote_files[path].sha1 != local_file.sha1
        )
        deletes = sorted(path for path in remote_files if path not in local_files)
        return ActionSet(uploads=tuple(uploads), deletes=tuple(deletes))


def reconcile(
    local_files: Mapping[str, LocalFile], remote_files: Mapping[str, RemoteFile]
) -> ActionSet:
    """Shortcut for :meth:`FileComparator.reconcile`."""
    return FileComparator().reconcile(local_files, remote_files)
