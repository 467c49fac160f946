"""Bounded-concurrency execution of per-file network operations."""

import logging
import threading
import time
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .comparator import ActionSet

logger = logging.getLogger(__name__)


class TaskKind(str, Enum):
    """Kind of per-file operation."""

    UPLOAD = "upload"
    DELETE = "delete"
    DOWNLOAD = "download"


class TaskOutcome(str, Enum):
    """Outcome of a per-file operation."""

    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskResult:
    """Result of one upload, delete or download."""

    path: str
    """Relative path the task acted on"""

    kind: TaskKind

    outcome: TaskOutcome

    detail: Optional[str] = None
    """Failure message (or remote message on success)"""

    elapsed: float = 0.0
    """Wall time in seconds"""

    @property
    def ok(self) -> bool:
        return self.outcome == TaskOutcome.OK

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "kind": self.kind.value,
            "outcome": self.outcome.value,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class SyncTask:
    """A unit of work for :class:`BoundedTaskExecutor`.

    ``func`` returns an optional detail string on success and raises on
    failure.
    """

    path: str
    kind: TaskKind
    func: Callable[[], Optional[str]]


@dataclass
class SyncReport:
    """Aggregated results of a sync, single-file or backup operation."""

    results: list[TaskResult] = field(default_factory=list)
    actions: Optional[ActionSet] = None
    destination: Optional[Path] = None
    dry_run: bool = False

    @property
    def succeeded(self) -> list[TaskResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[TaskResult]:
        return [r for r in self.results if not r.ok]

    @property
    def has_failures(self) -> bool:
        return any(not r.ok for r in self.results)

    def count(self, kind: TaskKind, outcome: TaskOutcome = TaskOutcome.OK) -> int:
        return sum(1 for r in self.results if r.kind == kind and r.outcome == outcome)

    def to_dict(self) -> dict:
        data: dict = {
            "dry_run": self.dry_run,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "results": [r.to_dict() for r in self.results],
        }
        if self.actions is not None:
            data["actions"] = self.actions.to_dict()
        if self.destination is not None:
            data["destination"] = str(self.destination)
        return data


class BoundedTaskExecutor:
    """Runs tasks on a thread pool with at most ``max_workers`` in flight.

    Dispatch blocks once ``max_workers`` tasks are unresolved and resumes
    as soon as one completes, so the pending queue never grows beyond the
    limit. Every task produces exactly one :class:`TaskResult`; a raising
    task becomes a failed result and never stops the others.

    Examples:
        >>> executor = BoundedTaskExecutor(max_workers=2)
        >>> tasks = [SyncTask("a.html", TaskKind.UPLOAD, lambda: None)]
        >>> [r.outcome.value for r in executor.run(tasks)]
        ['ok']
    """

    def __init__(
        self,
        max_workers: int,
        on_result: Optional[Callable[[TaskResult], None]] = None,
    ):
        """Initialize executor.

        Args:
            max_workers: Maximum number of tasks in flight
            on_result: Called with each result as it completes (from a
                worker thread)
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers
        self.on_result = on_result

    def _execute(self, task: SyncTask) -> TaskResult:
        start = time.monotonic()
        try:
            detail = task.func()
            outcome = TaskOutcome.OK
        except Exception as e:
            detail = str(e) or e.__class__.__name__
            outcome = TaskOutcome.FAILED
        elapsed = time.monotonic() - start

        if outcome == TaskOutcome.OK:
            logger.debug(f"Completed {task.kind.value} {task.path} in {elapsed:.2f}s")
        else:
            logger.debug(
                f"Failed {task.kind.value} {task.path} in {elapsed:.2f}s: {detail}"
            )
        return TaskResult(
            path=task.path,
            kind=task.kind,
            outcome=outcome,
            detail=detail,
            elapsed=elapsed,
        )

    def run(self, tasks: Iterable[SyncTask]) -> list[TaskResult]:
        """Run all tasks and wait for them to finish.

        Args:
            tasks: Tasks to run; consumed lazily as slots free up

        Returns:
            One result per task, in completion order
        """
        results: list[TaskResult] = []
        results_lock = threading.Lock()
        slots = threading.BoundedSemaphore(self.max_workers)

        def collect(future: "Future[TaskResult]") -> None:
            try:
                result = future.result()
                with results_lock:
                    results.append(result)
                if self.on_result is not None:
                    try:
                        self.on_result(result)
                    except Exception:
                        logger.exception("Result callback failed")
            finally:
                slots.release()

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for task in tasks:
                slots.acquire()
                try:
                    future = pool.submit(self._execute, task)
                except BaseException:
                    slots.release()
                    raise
                future.add_done_callback(collect)

        logger.debug(f"Executed {len(results)} task(s) with {self.max_workers} workers")
        return results
