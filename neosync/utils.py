"""Utility functions for neosync."""

import hashlib
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Optional

from .exceptions import NeoChecksumError

# =============================================================================
# Constants
# =============================================================================

DEFAULT_HOST: str = "neocities.org"
DEFAULT_API_URL: str = f"https://{DEFAULT_HOST}/api"

# Number of uploads/deletes/downloads allowed in flight at once
DEFAULT_CONCURRENT_TASKS: int = 4

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Read size used when hashing local files (64 KB)
HASH_CHUNK_SIZE: int = 64 * 1024

# Timestamp format used in backup folder names
BACKUP_TIMESTAMP_FORMAT: str = "%Y%m%d-%H%M%S"


# =============================================================================
# Path utilities
# =============================================================================


def normalize_relative_path(path: str) -> str:
    """Normalize a site-relative path to forward-slash form.

    Leading slashes and ``.`` segments are dropped and backslashes are
    treated as separators. Case is preserved.

    Args:
        path: Path relative to the site root

    Returns:
        Normalized relative path (e.g., "css/style.css")

    Raises:
        ValueError: If the path is empty or escapes the site root

    Examples:
        >>> normalize_relative_path("/css//style.css")
        'css/style.css'
        >>> normalize_relative_path("./index.html")
        'index.html'
    """
    parts: list[str] = []
    for part in PurePosixPath(path.replace("\\", "/")).parts:
        if part in ("/", "."):
            continue
        if part == "..":
            if not parts:
                raise ValueError(f"Path escapes the site root: {path}")
            parts.pop()
            continue
        parts.append(part)

    if not parts:
        raise ValueError(f"Empty relative path: {path!r}")
    return "/".join(parts)


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_sha1(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Calculate the SHA-1 digest of a file, as reported by ``/api/list``.

    The file is read exactly once, in chunks.

    Args:
        file_path: Path to the file
        chunk_size: Read size in bytes

    Returns:
        Lowercase hexadecimal SHA-1 digest

    Raises:
        NeoChecksumError: If the file cannot be read

    Examples:
        >>> import tempfile
        >>> with tempfile.NamedTemporaryFile() as f:
        ...     calculate_sha1(Path(f.name))
        'da39a3ee5e6b4b0d3255bfef95601890afd80709'
    """
    digest = hashlib.sha1()  # noqa: S324
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                digest.update(chunk)
    except OSError as e:
        raise NeoChecksumError(str(file_path), e.strerror or str(e)) from e
    return digest.hexdigest()


# =============================================================================
# Formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def backup_folder_name(sitename: str, now: Optional[datetime] = None) -> str:
    """Build the base folder name for a site backup.

    Examples:
        >>> backup_folder_name("mysite", datetime(2025, 1, 15, 10, 30, 0))
        'mysite-20250115-103000'
    """
    now = now or datetime.now()
    return f"{sitename}-{now.strftime(BACKUP_TIMESTAMP_FORMAT)}"
