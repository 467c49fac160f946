"""Per-file upload/delete/download operations."""

from pathlib import Path
from typing import Any, Optional

from ..api import NeoClient
from ..exceptions import NeoTaskError
from .executor import SyncTask, TaskKind


def _check_success(response: Any, what: str) -> Optional[str]:
    """Accept a response only if it reports ``result == "success"``.

    Returns:
        The server's message, if any

    Raises:
        NeoTaskError: For any other response
    """
    if isinstance(response, dict) and response.get("result") == "success":
        return response.get("message")
    if isinstance(response, dict) and response.get("message"):
        raise NeoTaskError(f"{what} failed: {response['message']}")
    raise NeoTaskError(f"{what} failed: unexpected response {response!r}")


class SyncOperations:
    """Per-file operations against the site, usable as executor tasks."""

    def __init__(self, client: NeoClient):
        """Initialize sync operations.

        Args:
            client: Neocities API client
        """
        self.client = client

    def upload_file(self, local_path: Path, relative_path: str) -> Optional[str]:
        """Upload one file.

        Args:
            local_path: File to read
            relative_path: Destination path on the site

        Returns:
            Server message on success

        Raises:
            NeoTaskError: If the server did not report success
            NeoAPIError: On transport or HTTP failure
        """
        response = self.client.upload_file(local_path, relative_path)
        return _check_success(response, "Upload")

    def delete_remote(self, relative_path: str) -> Optional[str]:
        """Delete one file from the site."""
        response = self.client.delete_files([relative_path])
        return _check_success(response, "Delete")

    def download_file(self, url: str, local_path: Path) -> Optional[str]:
        """Download one file by direct URL, creating parent directories."""
        local_path.parent.mkdir(parents=True, exist_ok=True)
        self.client.download_file(url, local_path)
        return None

    def upload_task(self, base_path: Path, relative_path: str) -> SyncTask:
        return SyncTask(
            path=relative_path,
            kind=TaskKind.UPLOAD,
            func=lambda: self.upload_file(base_path / relative_path, relative_path),
        )

    def delete_task(self, relative_path: str) -> SyncTask:
        return SyncTask(
            path=relative_path,
            kind=TaskKind.DELETE,
            func=lambda: self.delete_remote(relative_path),
        )

    def download_task(self, url: str, relative_path: str, local_path: Path) -> SyncTask:
        return SyncTask(
            path=relative_path,
            kind=TaskKind.DOWNLOAD,
            func=lambda: self.download_file(url, local_path),
        )
