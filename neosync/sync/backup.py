"""Full download of a site into a fresh local folder."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..api import NeoClient
from ..output import OutputFormatter
from ..utils import backup_folder_name
from .executor import BoundedTaskExecutor, SyncReport, TaskResult
from .operations import SyncOperations
from .scanner import DirectoryScanner
from .session import SyncSession

logger = logging.getLogger(__name__)


def create_backup_folder(
    destination_root: Path, sitename: str, now: Optional[datetime] = None
) -> Path:
    """Create a uniquely named backup folder.

    The name is ``{sitename}-{timestamp}``; if that folder already exists a
    numeric suffix (``-1``, ``-2``, ...) is appended.

    Returns:
        The created directory
    """
    base_name = backup_folder_name(sitename, now)
    destination_root.mkdir(parents=True, exist_ok=True)

    candidate = destination_root / base_name
    suffix = 0
    while True:
        try:
            candidate.mkdir()
            return candidate
        except FileExistsError:
            suffix += 1
            candidate = destination_root / f"{base_name}-{suffix}"


class BackupOrchestrator:
    """Downloads every file of the site by its direct URL."""

    def __init__(
        self,
        client: NeoClient,
        session: SyncSession,
        output: Optional[OutputFormatter] = None,
    ):
        self.client = client
        self.session = session
        self.output = output or OutputFormatter()
        self.operations = SyncOperations(client)
        self.scanner = DirectoryScanner()

    def download_all(
        self,
        destination_root: Optional[Path] = None,
        on_result: Optional[Callable[[TaskResult], None]] = None,
        on_total: Optional[Callable[[int], None]] = None,
    ) -> SyncReport:
        """Download the whole site.

        The site identifier and the listing are fetched before anything is
        written, so a failing listing leaves no empty folder behind.

        Args:
            destination_root: Directory the backup folder is created in
                (default: current directory)
            on_result: Called with each result as it completes
            on_total: Called with the number of files before any download

        Returns:
            Report with one result per file and the backup folder

        Raises:
            NeoAPIError: If the site info or listing cannot be fetched
        """
        sitename = self.client.get_site_identifier()
        remote_files = self.scanner.scan_remote(self.client.list_files())

        destination = create_backup_folder(
            destination_root if destination_root is not None else Path.cwd(),
            sitename,
        )
        self.output.info(
            f"Downloading {len(remote_files)} file(s) from {sitename} to {destination}"
        )

        tasks = (
            self.operations.download_task(
                self.client.site_url(sitename, path), path, destination / path
            )
            for path in sorted(remote_files)
        )

        if on_total is not None:
            on_total(len(remote_files))
        executor = BoundedTaskExecutor(
            self.session.n_concurrent_tasks, on_result=on_result
        )
        report = SyncReport(results=executor.run(tasks), destination=destination)

        logger.debug(
            f"Backup of {sitename}: {len(report.succeeded)} ok, "
            f"{len(report.failed)} failed"
        )
        return report
