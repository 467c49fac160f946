"""Data models for Neocities API responses.

All knowledge of the response schema lives here; the rest of the package
works with these dataclasses.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .exceptions import NeoInvalidResponseError


@dataclass
class RemoteEntry:
    """A single entry of the ``/api/list`` response."""

    path: str
    is_directory: bool
    size: int = 0
    updated_at: Optional[str] = None
    sha1_hash: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteEntry":
        """Create a RemoteEntry from one item of the ``files`` array.

        Raises:
            NeoInvalidResponseError: If the item has no usable path
        """
        if not isinstance(data, dict):
            raise NeoInvalidResponseError(f"Unexpected file entry: {data!r}")
        path = data.get("path")
        if not isinstance(path, str) or not path:
            raise NeoInvalidResponseError(f"File entry without path: {data!r}")

        is_directory = bool(data.get("is_directory", False))
        sha1_hash = data.get("sha1_hash")
        if not is_directory and not isinstance(sha1_hash, str):
            raise NeoInvalidResponseError(f"File entry without sha1_hash: {path}")

        return cls(
            path=path,
            is_directory=is_directory,
            size=int(data.get("size") or 0),
            updated_at=data.get("updated_at"),
            sha1_hash=sha1_hash.lower() if isinstance(sha1_hash, str) else None,
        )


@dataclass
class FileListResult:
    """Parsed ``/api/list`` response."""

    entries: list[RemoteEntry] = field(default_factory=list)

    @property
    def files(self) -> list[RemoteEntry]:
        """Entries that are regular files."""
        return [e for e in self.entries if not e.is_directory]

    @classmethod
    def from_api_response(cls, data: Any) -> "FileListResult":
        if not isinstance(data, dict) or not isinstance(data.get("files"), list):
            raise NeoInvalidResponseError("Listing response has no 'files' array")
        return cls(entries=[RemoteEntry.from_dict(item) for item in data["files"]])


@dataclass
class SiteInfo:
    """Parsed ``/api/info`` response."""

    sitename: str
    hits: int = 0
    created_at: Optional[str] = None
    last_updated: Optional[str] = None
    domain: Optional[str] = None
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, data: Any) -> "SiteInfo":
        if not isinstance(data, dict):
            raise NeoInvalidResponseError("Info response is not an object")
        # Neocities nests the fields under "info"; accept a flat object too
        info = data.get("info", data)
        if not isinstance(info, dict):
            raise NeoInvalidResponseError("Info response has no 'info' object")
        sitename = info.get("sitename")
        if not isinstance(sitename, str) or not sitename:
            raise NeoInvalidResponseError("Info response has no sitename")
        return cls(
            sitename=sitename,
            hits=int(info.get("hits") or 0),
            created_at=info.get("created_at"),
            last_updated=info.get("last_updated"),
            domain=info.get("domain"),
            tags=list(info.get("tags") or []),
        )
