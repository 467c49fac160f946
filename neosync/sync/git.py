"""Git integration: tracked-file listing and working tree isolation."""

import logging
import subprocess
from pathlib import Path
from typing import Callable, Optional, TypeVar

from ..exceptions import NeoConfigError, NeoGitError, NeoWorkingTreeError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STASH_MESSAGE = "neosync: uncommitted changes"


class GitRepository:
    """Thin wrapper around the ``git`` command for one repository."""

    def __init__(self, root: Path, git: str = "git"):
        """Initialize repository wrapper.

        Args:
            root: Top level directory of the working tree
            git: git executable
        """
        self.root = root
        self.git = git

    @classmethod
    def find_root(cls, path: Path, git: str = "git") -> "GitRepository":
        """Locate the repository containing ``path``.

        Raises:
            NeoConfigError: If ``path`` is not inside a git working tree
        """
        try:
            result = subprocess.run(
                [git, "-C", str(path), "rev-parse", "--show-toplevel"],
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise NeoConfigError(f"Cannot run git: {e}") from e

        if result.returncode != 0:
            raise NeoConfigError(
                f"{path} is not inside a git repository "
                "(use --no-git to sync the directory as is)"
            )
        root = Path(result.stdout.strip())
        logger.debug("Repository root for %s is %s", path, root)
        return cls(root, git=git)

    def _run(self, *args: str, check: bool = True) -> str:
        cmd = [self.git, *args]
        logger.debug("Running %s in %s", " ".join(cmd), self.root)
        try:
            result = subprocess.run(
                cmd, cwd=self.root, check=False, capture_output=True, text=True
            )
        except OSError as e:
            raise NeoGitError(list(args), -1, str(e)) from e
        if result.returncode != 0:
            if not check:
                return ""
            raise NeoGitError(list(args), result.returncode, result.stderr)
        return result.stdout

    def ls_files(self) -> list[str]:
        """Paths of all files tracked by the index, relative to the root."""
        output = self._run("ls-files", "-z", "--full-name")
        return [p for p in output.split("\0") if p]

    def has_uncommitted_changes(self) -> bool:
        """True if tracked files differ from HEAD (staged or not)."""
        output = self._run("status", "--porcelain", "--untracked-files=no")
        return bool(output.strip())

    def stash_head(self) -> Optional[str]:
        """Commit id of the newest stash entry, or None if there is none."""
        output = self._run("rev-parse", "-q", "--verify", "refs/stash", check=False)
        return output.strip() or None

    def stash_push(self, message: str = STASH_MESSAGE) -> Optional[str]:
        """Stash tracked modifications, leaving the committed state on disk.

        ``git stash push`` exits 0 without creating an entry when it finds
        nothing it can save (e.g. a submodule with modified content), so the
        stash head is compared before and after.

        Returns:
            Commit id of the created stash, or None if nothing was stashed
        """
        before = self.stash_head()
        self._run("stash", "push", "--message", message)
        after = self.stash_head()
        if after is None or after == before:
            return None
        return after

    def stash_pop(self) -> None:
        """Re-apply the most recent stash, including its staged state."""
        self._run("stash", "pop", "--index")


class WorkingTreeGuard:
    """Hides uncommitted changes for the duration of a ``with`` block.

    When enabled and the working tree is dirty, tracked modifications are
    stashed on enter and popped on exit, whether or not the block raised.
    Exceptions from the block propagate unchanged. If the stash cannot be
    re-applied, :class:`NeoWorkingTreeError` is raised instead.

    Examples:
        >>> repo = GitRepository.find_root(Path("."))  # doctest: +SKIP
        >>> with WorkingTreeGuard(repo):  # doctest: +SKIP
        ...     files = repo.ls_files()
    """

    def __init__(self, repository: Optional[GitRepository], enabled: bool = True):
        self.repository = repository
        self.enabled = enabled and repository is not None
        self.stash_ref: Optional[str] = None

    @property
    def active(self) -> bool:
        """True while changes are stashed."""
        return self.stash_ref is not None

    def __enter__(self) -> "WorkingTreeGuard":
        if not self.enabled or self.repository is None:
            return self
        if not self.repository.has_uncommitted_changes():
            logger.debug("Working tree clean, nothing to stash")
            return self

        self.stash_ref = self.repository.stash_push()
        if self.stash_ref is None:
            logger.debug("git stash saved nothing, leaving the stash list alone")
        else:
            logger.info("Stashed uncommitted changes (%s)", self.stash_ref)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.stash_ref is None or self.repository is None:
            return

        stash_ref = self.stash_ref
        try:
            self.repository.stash_pop()
        except NeoGitError as e:
            raise NeoWorkingTreeError(
                f"Could not restore uncommitted changes: {e}. They are saved in "
                f"stash {stash_ref}; restore them with 'git stash pop --index' "
                f"in {self.repository.root}",
                stash_ref=stash_ref,
                original_error=exc_val,
            ) from e
        self.stash_ref = None
        logger.info("Restored uncommitted changes")

    def run(self, body: Callable[[], T]) -> T:
        """Call ``body`` inside the guard and return its result."""
        with self:
            return body()
