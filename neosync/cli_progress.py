"""CLI progress display for push and download operations.

This module provides a Rich-based progress bar fed by the result
callback of the bounded task executor.
"""

import threading
from typing import Callable, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .sync.executor import TaskResult


class TaskProgressDisplay:
    """Rich-based progress display for a batch of per-file tasks.

    The bar counts completed tasks; failures are tallied in a separate
    column.
    """

    def __init__(
        self,
        description: str = "Syncing",
        console: Optional[Console] = None,
    ) -> None:
        self.description = description
        self.console = console
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None
        self._failed = 0
        self._lock = threading.Lock()

    def _handle_result(self, result: TaskResult) -> None:
        """Handle a completed task (called from worker threads)."""
        if self._progress is None or self._task is None:
            return
        with self._lock:
            if not result.ok:
                self._failed += 1
            self._progress.update(
                self._task,
                advance=1,
                current=result.path,
                failed=f"{self._failed} failed" if self._failed else "",
            )

    def set_total(self, total: int) -> None:
        """Set the number of tasks once it is known."""
        if self._progress is None or self._task is None:
            return
        with self._lock:
            self._progress.update(self._task, total=total)

    def create_callback(self) -> Callable[[TaskResult], None]:
        """Create an ``on_result`` callback that updates this display."""
        return self._handle_result

    def __enter__(self) -> "TaskProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("[red]{task.fields[failed]}"),
            TextColumn("[cyan]{task.fields[current]}"),
            TimeElapsedColumn(),
            console=self.console,
            refresh_per_second=4,
        )
        self._progress.__enter__()
        self._task = self._progress.add_task(
            self.description, total=None, current="", failed=""
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            if self._task is not None:
                self._progress.update(
                    self._task, description=f"{self.description} done", current=""
                )
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._task = None


def run_push_with_progress(engine, dry_run: bool, show_progress: bool = True):
    """Run ``engine.push`` with a progress bar.

    For dry runs, or when ``show_progress`` is False, no bar is shown.

    Returns:
        The SyncReport from the engine
    """
    if dry_run or not show_progress:
        return engine.push(dry_run=dry_run)

    with TaskProgressDisplay("Pushing", console=engine.output.err_console) as display:
        return engine.push(
            dry_run=False,
            on_result=display.create_callback(),
            on_total=display.set_total,
        )


def run_download_with_progress(orchestrator, destination_root, show_progress=True):
    """Run ``orchestrator.download_all`` with a progress bar."""
    if not show_progress:
        return orchestrator.download_all(destination_root)

    with TaskProgressDisplay(
        "Downloading", console=orchestrator.output.err_console
    ) as display:
        return orchestrator.download_all(
            destination_root,
            on_result=display.create_callback(),
            on_total=display.set_total,
        )
