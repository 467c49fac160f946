"""Core sync engine for executing sync operations."""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..api import NeoClient
from ..exceptions import NeoConfigError
from ..output import OutputFormatter
from ..utils import normalize_relative_path
from .comparator import ActionSet, FileComparator, SyncDecision
from .executor import (
    BoundedTaskExecutor,
    SyncReport,
    SyncTask,
    TaskKind,
    TaskResult,
)
from .git import GitRepository, WorkingTreeGuard
from .operations import SyncOperations
from .scanner import DirectoryScanner, LocalFile, RemoteFile
from .session import SyncSession

logger = logging.getLogger(__name__)


class SyncEngine:
    """Mirrors a local site directory to the remote site."""

    def __init__(
        self,
        client: NeoClient,
        session: SyncSession,
        output: Optional[OutputFormatter] = None,
        repository: Optional[GitRepository] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Neocities API client
            session: Settings of this invocation
            output: Output formatter for displaying progress/status
            repository: Git repository to use in git mode; located from
                the site directory when not given
        """
        self.client = client
        self.session = session
        self.output = output or OutputFormatter()
        self.operations = SyncOperations(client)
        self.scanner = DirectoryScanner(ignore_regex=session.ignore_regex)
        self.comparator = FileComparator()
        self._repository = repository

    @property
    def repository(self) -> Optional[GitRepository]:
        """Repository whose index defines the site, or None without git.

        Raises:
            NeoConfigError: If git mode is on and no repository is found
        """
        if not self.session.use_git:
            return None
        if self._repository is None:
            self._repository = GitRepository.find_root(self.session.site_directory)
        return self._repository

    @property
    def base_path(self) -> Path:
        """Directory relative paths are resolved against."""
        repository = self.repository
        return repository.root if repository is not None else self.session.site_directory

    def working_tree_guard(self) -> WorkingTreeGuard:
        return WorkingTreeGuard(self.repository, enabled=self.session.use_git)

    # =========================
    # Inventories
    # =========================

    def list_local_paths(self) -> list[str]:
        """Relative paths of the local site, without hashing."""
        self.session.validate_site_directory()
        return self.scanner.list_local(
            self.session.site_directory, repository=self.repository
        )

    def scan_local(self) -> dict[str, LocalFile]:
        """Build the local inventory (hashes every file).

        In git mode call this inside :meth:`working_tree_guard` so that only
        committed content is hashed.
        """
        start = time.time()
        paths = self.list_local_paths()
        inventory = self.scanner.scan_local(self.base_path, paths)
        logger.debug(
            f"Local scan took {time.time() - start:.2f}s for {len(inventory)} files"
        )
        return inventory

    def scan_remote(self) -> dict[str, RemoteFile]:
        """Build the remote inventory from one listing call.

        Raises:
            NeoAPIError: If the listing fails; never returns a partial or
                empty inventory in that case
        """
        start = time.time()
        inventory = self.scanner.scan_remote(self.client.list_files())
        logger.debug(
            f"Remote listing took {time.time() - start:.2f}s "
            f"for {len(inventory)} files"
        )
        return inventory

    def list_remote_paths(self) -> list[str]:
        """Relative paths of all files on the site."""
        return sorted(self.scan_remote())

    def _scan_both(self) -> tuple[dict[str, LocalFile], dict[str, RemoteFile]]:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=self.output.quiet or self.output.json_output,
            console=self.output.err_console,
        ) as progress:
            task = progress.add_task("Scanning local files...", total=None)
            local_files = self.scan_local()
            progress.update(task, description=f"Found {len(local_files)} local file(s)")

            task = progress.add_task("Listing remote files...", total=None)
            remote_files = self.scan_remote()
            progress.update(
                task, description=f"Found {len(remote_files)} remote file(s)"
            )
        return local_files, remote_files

    # =========================
    # Reconciliation
    # =========================

    def status(self) -> ActionSet:
        """Compute what a push would do, without changing anything."""
        with self.working_tree_guard():
            local_files, remote_files = self._scan_both()
        return self.comparator.reconcile(local_files, remote_files)

    def compare(self) -> list[SyncDecision]:
        """Per-file decisions with reasons, for detailed status output."""
        with self.working_tree_guard():
            local_files, remote_files = self._scan_both()
        return self.comparator.compare_files(local_files, remote_files)

    def push(
        self,
        dry_run: bool = False,
        on_result: Optional[Callable[[TaskResult], None]] = None,
        on_total: Optional[Callable[[int], None]] = None,
    ) -> SyncReport:
        """Make the remote site match the local tree.

        Uncommitted changes are hidden for the whole operation in git mode,
        including while uploads read file content.

        Args:
            dry_run: Only compute and display the plan
            on_result: Called with each result as it completes
            on_total: Called with the number of actions before any runs

        Returns:
            Report with one result per upload/delete

        Raises:
            NeoConfigError: Before any network call, on unusable settings
            NeoAPIError: If the remote listing fails (nothing is changed)
            NeoWorkingTreeError: If uncommitted changes could not be restored
        """
        self.session.validate_site_directory()

        with self.working_tree_guard():
            local_files, remote_files = self._scan_both()
            actions = self.comparator.reconcile(local_files, remote_files)
            self._display_sync_plan(actions, dry_run)

            report = SyncReport(actions=actions, dry_run=dry_run)
            if not dry_run and not actions.is_empty:
                if on_total is not None:
                    on_total(len(actions))
                report.results = self.apply(actions, on_result=on_result)

        if not self.output.quiet:
            self._display_summary(report)
        return report

    def apply(
        self,
        actions: ActionSet,
        on_result: Optional[Callable[[TaskResult], None]] = None,
    ) -> list[TaskResult]:
        """Run the uploads and deletes of an action set concurrently.

        Returns:
            One result per action
        """
        base_path = self.base_path

        def tasks():
            for path in actions.uploads:
                yield self.operations.upload_task(base_path, path)
            for path in actions.deletes:
                yield self.operations.delete_task(path)

        executor = BoundedTaskExecutor(
            self.session.n_concurrent_tasks, on_result=on_result
        )
        return executor.run(tasks())

    # =========================
    # Single-file operations
    # =========================

    def upload(self, file_path: Path) -> SyncReport:
        """Upload one local file, bypassing reconciliation.

        Raises:
            NeoConfigError: If the file is missing or outside the site
        """
        file_path = file_path.absolute()
        if not file_path.is_file():
            raise NeoConfigError(f"Not a file: {file_path}")
        try:
            relative_path = normalize_relative_path(
                file_path.relative_to(self.base_path.absolute()).as_posix()
            )
        except ValueError:
            raise NeoConfigError(
                f"{file_path} is not inside the site directory {self.base_path}"
            ) from None

        task = SyncTask(
            path=relative_path,
            kind=TaskKind.UPLOAD,
            func=lambda: self.operations.upload_file(file_path, relative_path),
        )
        return self._run_single(task)

    def delete(self, relative_path: str) -> SyncReport:
        """Delete one remote file, bypassing reconciliation."""
        try:
            relative_path = normalize_relative_path(relative_path)
        except ValueError as e:
            raise NeoConfigError(str(e)) from e
        return self._run_single(self.operations.delete_task(relative_path))

    def _run_single(self, task: SyncTask) -> SyncReport:
        executor = BoundedTaskExecutor(1)
        return SyncReport(results=executor.run([task]))

    # =========================
    # Display
    # =========================

    def _display_sync_plan(self, actions: ActionSet, dry_run: bool) -> None:
        """Display sync plan to user."""
        if self.output.quiet:
            return

        if dry_run:
            self.output.info("Dry run: No changes will be made")
        self.output.info("Sync plan:")
        self.output.info(f"  ↑ Upload: {len(actions.uploads)} file(s)")
        self.output.info(f"  ✗ Delete remote: {len(actions.deletes)} file(s)")
        if dry_run:
            for path in actions.uploads:
                self.output.info(f"    upload  {path}")
            for path in actions.deletes:
                self.output.info(f"    delete  {path}")
        self.output.print("")

    def _display_summary(self, report: SyncReport) -> None:
        """Display sync summary."""
        if report.dry_run:
            self.output.success("Dry run complete!")
            return
        if report.actions is not None and report.actions.is_empty:
            self.output.info("No changes needed - everything is in sync!")
            return

        uploaded = report.count(TaskKind.UPLOAD)
        deleted = report.count(TaskKind.DELETE)
        failed = len(report.failed)
        if failed:
            self.output.warning(
                f"Sync finished with errors: {uploaded} uploaded, "
                f"{deleted} deleted, {failed} failed"
            )
        else:
            self.output.success(
                f"Sync complete! {uploaded} uploaded, {deleted} deleted"
            )
