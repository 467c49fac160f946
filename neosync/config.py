"""Profile configuration for neosync.

Each site is described by a profile file in
``~/.config/neosync/profiles/<name>.conf``::

    # my personal site
    site_directory=~/src/my-site
    api_key=0123456789abcdef
    ignore_regex=^(drafts/|.*\\.psd$)
    n_concurrent_tasks=4
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional

from .exceptions import NeoConfigError

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"
PROFILE_SUFFIX = ".conf"

PROFILE_KEYS = (
    "site_directory",
    "api_key",
    "ignore_regex",
    "n_concurrent_tasks",
    "host",
    "api_url",
)

_PROFILE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def parse_profile(text: str, source: str = "<profile>") -> dict[str, str]:
    """Parse the ``key=value`` profile format.

    Blank lines and lines starting with ``#`` are skipped. Values may be
    wrapped in single or double quotes.

    Args:
        text: Profile file content
        source: Name used in error messages

    Returns:
        Dictionary of raw string values

    Raises:
        NeoConfigError: On malformed lines or unknown keys
    """
    values: dict[str, str] = {}
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            raise NeoConfigError(f"{source}:{lineno}: expected key=value")

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]

        if key not in PROFILE_KEYS:
            raise NeoConfigError(f"{source}:{lineno}: unknown setting '{key}'")
        values[key] = value
    return values


def format_profile(values: dict[str, str]) -> str:
    """Serialize profile values in the format read by :func:`parse_profile`."""
    lines = []
    for key in PROFILE_KEYS:
        value = values.get(key)
        if value is None or value == "":
            continue
        lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


class Config:
    """Locates, reads and writes profile files."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize config.

        Args:
            config_dir: Base configuration directory. Defaults to
                ``$NEOSYNC_CONFIG_DIR`` or ``$XDG_CONFIG_HOME/neosync``.
        """
        self._config_dir = config_dir

    @property
    def config_dir(self) -> Path:
        if self._config_dir is not None:
            return self._config_dir
        env_dir = os.environ.get("NEOSYNC_CONFIG_DIR")
        if env_dir:
            return Path(env_dir).expanduser()
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
        return base / "neosync"

    @property
    def profiles_dir(self) -> Path:
        return self.config_dir / "profiles"

    def get_profile_path(self, name: str) -> Path:
        """Return the file path for a profile name.

        Raises:
            NeoConfigError: If the name is not a plain identifier
        """
        if not _PROFILE_NAME_RE.match(name):
            raise NeoConfigError(f"Invalid profile name: {name!r}")
        return self.profiles_dir / f"{name}{PROFILE_SUFFIX}"

    def list_profiles(self) -> list[str]:
        if not self.profiles_dir.is_dir():
            return []
        return sorted(
            p.name[: -len(PROFILE_SUFFIX)]
            for p in self.profiles_dir.iterdir()
            if p.is_file() and p.name.endswith(PROFILE_SUFFIX)
        )

    def load_profile(self, name: str = DEFAULT_PROFILE) -> dict[str, str]:
        """Read a profile file.

        Raises:
            NeoConfigError: If the profile does not exist or is malformed
        """
        path = self.get_profile_path(name)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NeoConfigError(
                f"Profile '{name}' not found ({path}). Run 'neosync init' first."
            ) from None
        except OSError as e:
            raise NeoConfigError(f"Cannot read profile {path}: {e}") from e

        logger.debug("Loaded profile %s from %s", name, path)
        return parse_profile(text, source=str(path))

    def save_profile(self, name: str, values: dict[str, str]) -> Path:
        """Write a profile file readable only by the current user.

        Returns:
            Path of the written file
        """
        path = self.get_profile_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(format_profile(values))
        logger.debug("Saved profile %s to %s", name, path)
        return path


config = Config()
