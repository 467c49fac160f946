"""Exceptions raised by neosync."""

from typing import Optional


class NeoError(Exception):
    """Base class for all neosync errors."""


class NeoConfigError(NeoError):
    """Profile is missing or invalid, or the site directory is unusable.

    Raised before any network call is made.
    """


class NeoAPIError(NeoError):
    """A call to the remote API failed or returned an unusable response."""

    def __init__(self, message: str, error_type: Optional[str] = None):
        super().__init__(message)
        self.error_type = error_type


class NeoNetworkError(NeoAPIError):
    """Transport-level failure (connection refused, timeout, ...)."""


class NeoAuthenticationError(NeoAPIError):
    """The API key was rejected."""


class NeoRateLimitError(NeoAPIError):
    """The server asked us to slow down (HTTP 429)."""


class NeoNotFoundError(NeoAPIError):
    """Requested resource does not exist."""


class NeoInvalidResponseError(NeoAPIError):
    """Response could not be parsed into the expected structure."""


class NeoDownloadError(NeoAPIError):
    """Direct retrieval of a site file failed."""


class NeoChecksumError(NeoError, OSError):
    """A local file could not be read while computing its content hash."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot hash {path}: {reason}")
        self.path = path
        self.reason = reason


class NeoTaskError(NeoError):
    """A single upload, delete or download did not report success."""


class NeoGitError(NeoError):
    """A git command exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"git {' '.join(command)} failed: {detail}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class NeoWorkingTreeError(NeoError):
    """Uncommitted changes could not be restored after an operation.

    The working tree is left without the user's edits; they are still held in
    the stash named by ``stash_ref`` and must be restored manually.
    """

    def __init__(
        self,
        message: str,
        stash_ref: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.stash_ref = stash_ref
        self.original_error = original_error
