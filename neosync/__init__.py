"""neosync - mirror a local directory or git repository to a Neocities site."""

from .api import NeoClient
from .exceptions import (
    NeoAPIError,
    NeoAuthenticationError,
    NeoChecksumError,
    NeoConfigError,
    NeoDownloadError,
    NeoError,
    NeoGitError,
    NeoInvalidResponseError,
    NeoNetworkError,
    NeoNotFoundError,
    NeoRateLimitError,
    NeoTaskError,
    NeoWorkingTreeError,
)
from .utils import calculate_sha1, normalize_relative_path

__version__ = "0.1.0"

__all__ = [
    "NeoClient",
    "NeoError",
    "NeoAPIError",
    "NeoAuthenticationError",
    "NeoChecksumError",
    "NeoConfigError",
    "NeoDownloadError",
    "NeoGitError",
    "NeoInvalidResponseError",
    "NeoNetworkError",
    "NeoNotFoundError",
    "NeoRateLimitError",
    "NeoTaskError",
    "NeoWorkingTreeError",
    "calculate_sha1",
    "normalize_relative_path",
]
