"""Scan job scheduling over the durable work queue."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol

import httpx

from upgrade_status.analyzer import AnalysisRunner
from upgrade_status.discovery.collector import ProjectCollector
from upgrade_status.errors import ConfigurationError, UnknownProjectError
from upgrade_status.http_client import SyncHTTPClient
from upgrade_status.models import Project
from upgrade_status.store import ResultStore
from upgrade_status.work_queue import QueueItem, ScanQueue, StateStore

logger = logging.getLogger(__name__)

NUMBER_OF_JOBS = "number_of_jobs"
LAST_SCAN = "last_scan"


class JobDispatcher(Protocol):
    """Runs the scan of one queued project."""

    def dispatch(self, item: QueueItem) -> None:
        ...


class InProcessDispatcher:
    """Scans the project in the calling process."""

    def __init__(self, collector: ProjectCollector, runner: AnalysisRunner) -> None:
        self.collector = collector
        self.runner = runner

    def dispatch(self, item: QueueItem) -> None:
        try:
            project = self.collector.load_project(item.project, item.project_type)
        except UnknownProjectError:
            logger.warning(f"Queued project {item.project} no longer exists, skipping")
            return
        self.runner.analyze(project)


class LoopbackDispatcher:
    """Asks the host to scan the project in a separate request.

    A fatal analyzer failure then takes down the request handling process,
    not the worker driving the queue.
    """

    def __init__(self, base_url: str, client: SyncHTTPClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or SyncHTTPClient(timeout=3600.0)

    def dispatch(self, item: QueueItem) -> None:
        url = f"{self.base_url}/jobs/run"
        try:
            response = self.client.post(
                url, json={"project": item.project, "type": item.project_type}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Loopback scan of {item.project} failed: {e}")


@dataclass
class JobProgress:
    """Progress of the current scan run."""

    status: str  # "running", "waiting" or "complete"
    completed: int
    total: int
    message: str
    project: str | None = None
    row_status: str | None = None

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return min(100, int(self.completed * 100 / self.total))


class ScanScheduler:
    """Queues scan jobs and runs them one at a time."""

    def __init__(
        self,
        queue: ScanQueue,
        state: StateStore,
        dispatcher: JobDispatcher,
        result_store: ResultStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.queue = queue
        self.state = state
        self.dispatcher = dispatcher
        self.result_store = result_store
        self.clock = clock

    def enqueue(self, projects: Iterable[Project]) -> int:
        """Queue projects for scanning.

        Returns:
            Number of projects newly queued (already queued ones are skipped)
        """
        added = 0
        for project in projects:
            _, is_new = self.queue.enqueue(project)
            if is_new:
                added += 1

        if added:
            self.state.set(NUMBER_OF_JOBS, self.state.get(NUMBER_OF_JOBS, 0) + added)
        logger.info(f"Queued {added} projects for scanning")
        return added

    def _progress(self, status: str, message: str, **kwargs: str | None) -> JobProgress:
        total = int(self.state.get(NUMBER_OF_JOBS, 0))
        remaining = self.queue.count()
        return JobProgress(
            status=status,
            completed=max(0, total - remaining),
            total=total,
            message=message,
            **kwargs,
        )

    def run_next(self) -> JobProgress:
        """Claim and run one job.

        Returns:
            Progress after the job. ``waiting`` means items remain but none
            could be claimed right now; ``complete`` means the queue is empty.
        """
        item = self.queue.claim_next()

        if item is None:
            if self.queue.count() > 0:
                return self._progress("waiting", "Waiting for a running scan to finish")
            total = int(self.state.get(NUMBER_OF_JOBS, 0))
            self.state.delete(NUMBER_OF_JOBS)
            self.state.set(LAST_SCAN, int(self.clock()))
            return JobProgress("complete", total, total, "All scans completed")

        logger.info(f"Scanning {item.project}")
        try:
            self.dispatcher.dispatch(item)
        except ConfigurationError:
            raise
        except Exception:
            logger.exception(f"Job for {item.project} failed, continuing with the next one")
        finally:
            self.queue.delete(item)

        report = self.result_store.get(item.project)
        if report is None:
            row_status = "not-scanned"
        elif report.has_findings:
            row_status = "known-errors"
        else:
            row_status = "no-known-error"

        progress = self._progress("running", "", project=item.project, row_status=row_status)
        progress.message = f"Completed {progress.completed} of {progress.total}."
        return progress

    def run_all(self, on_progress: Callable[[JobProgress], None] | None = None) -> JobProgress:
        """Run jobs until the queue is empty."""
        while True:
            progress = self.run_next()
            if on_progress is not None:
                on_progress(progress)
            if progress.status == "complete":
                return progress
            if progress.status == "waiting":
                time.sleep(1)

    def cancel(self) -> int:
        """Drop every pending job; reports already computed are kept.

        Returns:
            Number of jobs dropped
        """
        dropped = self.queue.purge()
        self.state.delete(NUMBER_OF_JOBS)
        logger.info(f"Cancelled {dropped} pending scans")
        return dropped

    def clear(self) -> int:
        """Cancel the run and delete all stored reports.

        Returns:
            Number of reports deleted
        """
        self.cancel()
        self.state.delete(LAST_SCAN)
        return self.result_store.delete_all()

    def last_scan(self) -> int | None:
        return self.state.get(LAST_SCAN)

    def is_running(self) -> bool:
        return self.state.get(NUMBER_OF_JOBS) is not None
