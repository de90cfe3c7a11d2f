"""Tests for scan job scheduling and dispatch."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from conftest import FakeAnalyzer, write_manifest
from upgrade_status.analyzer import AnalysisRunner
from upgrade_status.discovery import ManifestComponentSource, ProjectCollector
from upgrade_status.jobs import (
    LAST_SCAN,
    NUMBER_OF_JOBS,
    InProcessDispatcher,
    JobProgress,
    LoopbackDispatcher,
    ScanScheduler,
)
from upgrade_status.errors import ConfigurationError
from upgrade_status.models import Finding, Project, ProjectType, Report
from upgrade_status.store import ResultStore
from upgrade_status.work_queue import QueueItem, ScanQueue, StateStore

NOW = 1700000000.0


def project(name: str) -> Project:
    return Project(name=name, label=name, path=Path(f"/site/custom/{name}"), type=ProjectType.CUSTOM)


class RecordingDispatcher:
    """Dispatcher that stores a canned report per project."""

    def __init__(self, result_store: ResultStore, with_findings: set[str] | None = None, skip: set[str] | None = None):
        self.result_store = result_store
        self.with_findings = with_findings or set()
        self.skip = skip or set()
        self.dispatched: list[str] = []

    def dispatch(self, item: QueueItem) -> None:
        self.dispatched.append(item.project)
        if item.project in self.skip:
            return
        report = Report(date=1)
        if item.project in self.with_findings:
            report.add_finding(Finding(file="/a.py", line=1, message="Call to deprecated f()."))
            report.tally()
        self.result_store.set(item.project, report)


@pytest.fixture
def state(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "queue.db")


@pytest.fixture
def queue(tmp_path: Path) -> ScanQueue:
    return ScanQueue(tmp_path / "queue.db", clock=lambda: NOW)


def make_scheduler(queue, state, dispatcher, result_store) -> ScanScheduler:
    return ScanScheduler(queue, state, dispatcher, result_store, clock=lambda: NOW)


class TestScanScheduler:
    """Test the scan run lifecycle."""

    def test_enqueue_counts_new_jobs_only(self, queue, state, result_store):
        scheduler = make_scheduler(queue, state, RecordingDispatcher(result_store), result_store)

        assert scheduler.enqueue([project("a"), project("b")]) == 2
        assert scheduler.enqueue([project("a"), project("c")]) == 1

        assert state.get(NUMBER_OF_JOBS) == 3
        assert scheduler.is_running()

    def test_run_next_reports_row_status(self, queue, state, result_store):
        dispatcher = RecordingDispatcher(result_store, with_findings={"a"}, skip={"c"})
        scheduler = make_scheduler(queue, state, dispatcher, result_store)
        scheduler.enqueue([project("a"), project("b"), project("c")])

        first = scheduler.run_next()
        second = scheduler.run_next()
        third = scheduler.run_next()

        assert (first.project, first.row_status) == ("a", "known-errors")
        assert (second.project, second.row_status) == ("b", "no-known-error")
        assert (third.project, third.row_status) == ("c", "not-scanned")
        assert first.message == "Completed 1 of 3."
        assert third.completed == 3

    def test_run_all_completes_and_records_last_scan(self, queue, state, result_store):
        dispatcher = RecordingDispatcher(result_store)
        scheduler = make_scheduler(queue, state, dispatcher, result_store)
        scheduler.enqueue([project("a"), project("b")])
        seen: list[JobProgress] = []

        final = scheduler.run_all(seen.append)

        assert final.status == "complete"
        assert final.completed == final.total == 2
        assert final.percent == 100
        assert [p.status for p in seen] == ["running", "running", "complete"]
        assert dispatcher.dispatched == ["a", "b"]
        assert state.get(NUMBER_OF_JOBS) is None
        assert scheduler.last_scan() == int(NOW)
        assert not scheduler.is_running()

    def test_failed_job_does_not_stop_the_run(self, queue, state, result_store):
        dispatcher = RecordingDispatcher(result_store)
        dispatch = dispatcher.dispatch

        def failing_dispatch(item):
            if item.project == "a":
                raise RuntimeError("worker died")
            dispatch(item)

        dispatcher.dispatch = failing_dispatch
        scheduler = make_scheduler(queue, state, dispatcher, result_store)
        scheduler.enqueue([project("a"), project("b")])

        final = scheduler.run_all()

        assert final.status == "complete"
        assert queue.count() == 0
        assert not result_store.has("a")
        assert result_store.has("b")

    def test_configuration_error_stops_the_run(self, queue, state, result_store):
        dispatcher = MagicMock()
        dispatcher.dispatch.side_effect = ConfigurationError("scan.analyzer_command is empty")
        scheduler = make_scheduler(queue, state, dispatcher, result_store)
        scheduler.enqueue([project("a")])

        with pytest.raises(ConfigurationError):
            scheduler.run_next()

        assert queue.count() == 0

    def test_waiting_when_all_items_are_leased(self, queue, state, result_store):
        scheduler = make_scheduler(queue, state, RecordingDispatcher(result_store), result_store)
        scheduler.enqueue([project("a")])
        queue.claim_next()

        progress = scheduler.run_next()

        assert progress.status == "waiting"
        assert progress.completed == 0

    def test_cancel_keeps_reports(self, queue, state, result_store):
        scheduler = make_scheduler(queue, state, RecordingDispatcher(result_store), result_store)
        scheduler.enqueue([project("a"), project("b")])
        scheduler.run_next()

        assert scheduler.cancel() == 1
        assert queue.count() == 0
        assert not scheduler.is_running()
        assert result_store.has("a")

    def test_clear_deletes_reports_and_last_scan(self, queue, state, result_store):
        scheduler = make_scheduler(queue, state, RecordingDispatcher(result_store), result_store)
        scheduler.enqueue([project("a")])
        scheduler.run_all()

        assert scheduler.clear() == 1
        assert state.get(LAST_SCAN) is None
        assert result_store.keys() == []

    def test_percent_without_jobs(self):
        assert JobProgress("complete", 0, 0, "").percent == 100


class TestInProcessDispatcher:
    """Test scanning queued projects in process."""

    def test_dispatch_scans_project(self, tmp_path: Path, result_store, categorizer):
        write_manifest(tmp_path / "site" / "mine", "mine", core_version_requirement="^9")
        (tmp_path / "site" / "mine" / "mine.py").write_text("old_api()\n")
        collector = ProjectCollector(ManifestComponentSource([tmp_path / "site"]), result_store)
        runner = AnalysisRunner(FakeAnalyzer(), result_store, categorizer, clock=lambda: NOW)

        InProcessDispatcher(collector, runner).dispatch(QueueItem(1, "mine", "custom", str(tmp_path)))

        assert result_store.get("mine").finding_count == 1

    def test_vanished_project_is_skipped(self, tmp_path: Path, result_store, categorizer):
        collector = ProjectCollector(ManifestComponentSource([tmp_path]), result_store)
        runner = MagicMock()

        InProcessDispatcher(collector, runner).dispatch(QueueItem(1, "gone", "custom", str(tmp_path)))

        runner.analyze.assert_not_called()

    def test_analyzer_failure_does_not_stop_the_queue(self, tmp_path: Path, queue, state, result_store, categorizer):
        for name in ("aaa", "bbb"):
            write_manifest(tmp_path / "site" / name, name, core_version_requirement="^9")
            (tmp_path / "site" / name / f"{name}.py").write_text("old_api()\n")
        collector = ProjectCollector(ManifestComponentSource([tmp_path / "site"]), result_store)
        runner = AnalysisRunner(FakeAnalyzer(outputs={0: RuntimeError("boom")}), result_store, categorizer, clock=lambda: NOW)
        scheduler = make_scheduler(queue, state, InProcessDispatcher(collector, runner), result_store)
        projects = collector.collect_projects()
        scheduler.enqueue([projects["aaa"], projects["bbb"]])

        final = scheduler.run_all()

        assert final.status == "complete"
        assert result_store.get("aaa").findings[0].message == "boom"
        assert result_store.get("bbb").findings[0].message == "Call to deprecated function old_api()."


class TestLoopbackDispatcher:
    """Test dispatching scans to the host over HTTP."""

    def test_posts_job(self):
        client = MagicMock()
        dispatcher = LoopbackDispatcher("http://localhost:8080/", client=client)

        dispatcher.dispatch(QueueItem(1, "mine", "custom", "/site/mine"))

        client.post.assert_called_once_with(
            "http://localhost:8080/jobs/run", json={"project": "mine", "type": "custom"}
        )

    def test_http_failure_is_logged(self):
        client = MagicMock()
        client.post.side_effect = httpx.ConnectError("refused")
        dispatcher = LoopbackDispatcher("http://localhost:8080", client=client)

        with patch("upgrade_status.jobs.logger") as mock_logger:
            dispatcher.dispatch(QueueItem(1, "mine", "custom", "/site/mine"))

        mock_logger.error.assert_called_once()
