"""Sync session: the resolved, read-only settings of one invocation."""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import NeoConfigError
from ..utils import DEFAULT_API_URL, DEFAULT_CONCURRENT_TASKS, DEFAULT_HOST


@dataclass(frozen=True)
class SyncSession:
    """Settings for one site, built once at startup and never mutated.

    Examples:
        >>> session = SyncSession(
        ...     site_directory=Path("/home/user/site"),
        ...     api_key="secret",
        ...     n_concurrent_tasks=8,
        ... )
        >>> session.use_git
        True
    """

    site_directory: Path
    """Local directory mirrored to the site"""

    api_key: str
    """Bearer credential for the API"""

    ignore_regex: Optional[re.Pattern] = None
    """Relative paths matching this pattern are never synced"""

    n_concurrent_tasks: int = DEFAULT_CONCURRENT_TASKS
    """Maximum number of network operations in flight"""

    use_git: bool = True
    """Only sync committed, tracked files"""

    profile: str = "default"
    """Name of the profile the session was loaded from"""

    host: str = DEFAULT_HOST
    """Domain under which sites are served (``{sitename}.{host}``)"""

    api_url: str = DEFAULT_API_URL
    """Base URL of the API"""

    def __post_init__(self) -> None:
        if isinstance(self.site_directory, str):
            object.__setattr__(self, "site_directory", Path(self.site_directory))
        if isinstance(self.ignore_regex, str):
            object.__setattr__(
                self, "ignore_regex", _compile_ignore(self.ignore_regex)
            )
        if not self.api_key:
            raise NeoConfigError("API key not configured")
        if self.n_concurrent_tasks < 1:
            raise NeoConfigError(
                f"n_concurrent_tasks must be positive, got {self.n_concurrent_tasks}"
            )

    @classmethod
    def from_profile(
        cls,
        values: dict[str, str],
        profile: str = "default",
        use_git: bool = True,
        api_key: Optional[str] = None,
    ) -> "SyncSession":
        """Create a session from parsed profile values.

        Args:
            values: Raw values from :func:`neosync.config.parse_profile`
            profile: Profile name
            use_git: False when ``--no-git`` was given
            api_key: Overrides the profile's api_key when set

        Raises:
            NeoConfigError: If a required value is missing or invalid
        """
        raw_dir = values.get("site_directory")
        if not raw_dir:
            raise NeoConfigError(f"Profile '{profile}' has no site_directory")
        site_directory = Path(os.path.expandvars(raw_dir)).expanduser()

        key = api_key or values.get("api_key")
        if not key:
            raise NeoConfigError(f"Profile '{profile}' has no api_key")

        raw_tasks = values.get("n_concurrent_tasks")
        if raw_tasks:
            try:
                n_tasks = int(raw_tasks)
            except ValueError:
                raise NeoConfigError(
                    f"n_concurrent_tasks must be an integer, got {raw_tasks!r}"
                ) from None
        else:
            n_tasks = DEFAULT_CONCURRENT_TASKS

        ignore = values.get("ignore_regex")
        host = values.get("host") or DEFAULT_HOST
        api_url = values.get("api_url") or f"https://{host}/api"

        return cls(
            site_directory=site_directory,
            api_key=key,
            ignore_regex=_compile_ignore(ignore) if ignore else None,
            n_concurrent_tasks=n_tasks,
            use_git=use_git,
            profile=profile,
            host=host,
            api_url=api_url.rstrip("/"),
        )

    def validate_site_directory(self) -> None:
        """Check that the site directory can be walked.

        Raises:
            NeoConfigError: If the directory is missing or not a directory
        """
        if not self.site_directory.exists():
            raise NeoConfigError(
                f"Site directory does not exist: {self.site_directory}"
            )
        if not self.site_directory.is_dir():
            raise NeoConfigError(
                f"Site directory is not a directory: {self.site_directory}"
            )
        if not os.access(self.site_directory, os.R_OK | os.X_OK):
            raise NeoConfigError(f"Site directory is not readable: {self.site_directory}")


def _compile_ignore(pattern: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise NeoConfigError(f"Invalid ignore_regex {pattern!r}: {e}") from e
