"""Directory scanning utilities for sync operations."""

import logging
import os
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import NeoConfigError
from ..models import FileListResult
from ..utils import calculate_sha1, normalize_relative_path
from .git import GitRepository

logger = logging.getLogger(__name__)

# Version control bookkeeping that is never part of a site
VCS_DIRECTORIES = frozenset({".git", ".hg", ".svn"})
VCS_FILES = frozenset({".gitignore", ".gitattributes", ".gitmodules", ".gitkeep"})


@dataclass
class LocalFile:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    sha1: str
    """Hex SHA-1 of the file content"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path, hashing its content.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance

        Raises:
            NeoChecksumError: If the file cannot be read
        """
        relative_path = file_path.relative_to(base_path).as_posix()
        sha1 = calculate_sha1(file_path)
        return cls(
            path=file_path,
            relative_path=relative_path,
            size=file_path.stat().st_size,
            sha1=sha1,
        )


@dataclass
class RemoteFile:
    """Represents a remote file with metadata."""

    relative_path: str
    """Path relative to the site root"""

    sha1: str
    """Hex SHA-1 reported by the server"""

    size: int = 0
    """File size in bytes"""

    updated_at: Optional[str] = None
    """Last modification time as reported by the server"""


def is_vcs_metadata(relative_path: str) -> bool:
    """Check whether a path belongs to version control bookkeeping.

    Examples:
        >>> is_vcs_metadata(".git/config")
        True
        >>> is_vcs_metadata("blog/.gitignore")
        True
        >>> is_vcs_metadata("blog/git.html")
        False
    """
    parts = relative_path.split("/")
    if any(part in VCS_DIRECTORIES for part in parts[:-1]):
        return True
    return parts[-1] in VCS_FILES or parts[-1] in VCS_DIRECTORIES


class DirectoryScanner:
    """Builds the local and remote inventories of a site.

    Examples:
        >>> scanner = DirectoryScanner(ignore_regex=re.compile(r"\\.psd$"))
        >>> paths = scanner.list_local(Path("/home/user/site"))  # doctest: +SKIP
        >>> local_files = scanner.scan_local(Path("/home/user/site"), paths)  # doctest: +SKIP
    """

    def __init__(self, ignore_regex: Optional[re.Pattern] = None):
        """Initialize directory scanner.

        Args:
            ignore_regex: Relative paths matching this pattern are skipped
        """
        self.ignore_regex = ignore_regex

    def should_ignore(self, relative_path: str) -> bool:
        """Check if a relative path is excluded from the site."""
        if is_vcs_metadata(relative_path):
            return True
        if self.ignore_regex is not None and self.ignore_regex.search(relative_path):
            logger.debug(f"Ignoring (from ignore_regex): {relative_path}")
            return True
        return False

    def _filter(self, paths: Iterable[str]) -> Iterator[str]:
        for path in paths:
            if not self.should_ignore(path):
                yield path

    def walk(self, directory: Path) -> Iterator[str]:
        """Recursively yield relative paths of regular files under directory.

        Symlinked directories are not followed.

        Raises:
            NeoConfigError: If directory cannot be walked
        """
        if not directory.is_dir():
            raise NeoConfigError(f"Site directory is not a directory: {directory}")

        def on_error(error: OSError) -> None:
            if Path(error.filename or "") == directory:
                raise NeoConfigError(f"Cannot read site directory: {error}") from error
            logger.warning(f"Skipping unreadable directory: {error}")

        for root, dirs, files in os.walk(directory, onerror=on_error):
            # Don't descend into VCS folders at all
            dirs[:] = sorted(d for d in dirs if d not in VCS_DIRECTORIES)
            root_path = Path(root)
            for name in sorted(files):
                file_path = root_path / name
                if file_path.is_file():
                    yield file_path.relative_to(directory).as_posix()

    def list_local(
        self,
        site_directory: Path,
        repository: Optional[GitRepository] = None,
    ) -> list[str]:
        """List the relative paths that make up the local site.

        Args:
            site_directory: Directory to walk when no repository is given
            repository: When given, only files tracked by its index are
                listed, relative to the repository root

        Returns:
            Sorted list of relative paths
        """
        if repository is not None:
            base = repository.root
            candidates: Iterable[str] = (
                p for p in repository.ls_files() if (base / p).is_file()
            )
        else:
            candidates = self.walk(site_directory)

        paths = sorted(self._filter(candidates))
        logger.debug(f"Found {len(paths)} local file(s)")
        return paths

    def scan_local(self, base_path: Path, paths: Iterable[str]) -> dict[str, LocalFile]:
        """Build the local inventory by hashing each file.

        Args:
            base_path: Directory the relative paths are relative to
            paths: Relative paths from :meth:`list_local`

        Returns:
            Dictionary mapping relative_path to LocalFile

        Raises:
            NeoChecksumError: If any file cannot be read
        """
        inventory: dict[str, LocalFile] = {}
        for rel_path in paths:
            local_file = LocalFile.from_path(base_path / rel_path, base_path)
            inventory[local_file.relative_path] = local_file
        return inventory

    def scan_remote(self, listing: FileListResult) -> dict[str, RemoteFile]:
        """Build the remote inventory from a parsed ``/api/list`` response.

        Directories are skipped. Entries whose path cannot be normalized are
        logged and left out.

        Args:
            listing: Parsed listing from the API

        Returns:
            Dictionary mapping relative_path to RemoteFile
        """
        inventory: dict[str, RemoteFile] = {}
        for entry in listing.files:
            try:
                rel_path = normalize_relative_path(entry.path)
            except ValueError as e:
                logger.warning(f"Skipping remote entry with invalid path: {e}")
                continue
            inventory[rel_path] = RemoteFile(
                relative_path=rel_path,
                sha1=entry.sha1_hash or "",
                size=entry.size,
                updated_at=entry.updated_at,
            )
        return inventory
