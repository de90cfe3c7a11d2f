"""Per-project deprecation analysis."""

import logging
import time
from pathlib import Path
from typing import Callable

from upgrade_status.errors import (
    AnalyzerCrashError,
    AuxiliaryFetchError,
    BatchDecodeError,
    ConfigurationError,
)
from upgrade_status.models import Category, Finding, NextStep, Project, Report, ReportTotals
from upgrade_status.scanner.batch_analyzer import BatchAnalyzer, BatchResult, decode_batch, partition
from upgrade_status.scanner.categorizer import MessageCategorizer
from upgrade_status.scanner.file_discovery import FileDiscovery
from upgrade_status.scanner.metadata import check_compatibility, check_pyproject
from upgrade_status.scanner.plans import PlanSource
from upgrade_status.store import ResultStore

logger = logging.getLogger(__name__)


class AnalysisRunner:
    """Scans one project in batches and persists the categorized report.

    Every call to :meth:`analyze` leaves a report in the result store, even
    when the analyzer crashes part way through.
    """

    def __init__(
        self,
        batch_analyzer: BatchAnalyzer,
        result_store: ResultStore,
        categorizer: MessageCategorizer,
        clock: Callable[[], float] = time.time,
        plan_source: PlanSource | None = None,
        batch_size: int = 30,
        extensions: list[str] | None = None,
        exclude_patterns: list[str] | None = None,
        analyzer_config: Path | None = None,
        platform_name: str = "platform",
        target_version: str = "9.0.0",
        platform_package: str | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            batch_analyzer: Invokes the external analyzer on one batch
            result_store: Where reports are persisted
            categorizer: Assigns categories to findings
            clock: Returns the current unix time
            plan_source: Optional upstream migration plan lookup
            batch_size: Files per analyzer invocation
            extensions: Source file extensions to analyze
            exclude_patterns: Glob patterns of files to skip
            analyzer_config: Configuration file passed to the analyzer
            platform_name: Platform identifier used in messages
            target_version: Platform version the upgrade targets
            platform_package: Distribution required in a project's
                pyproject.toml (None skips that check)
        """
        self.batch_analyzer = batch_analyzer
        self.result_store = result_store
        self.categorizer = categorizer
        self.clock = clock
        self.plan_source = plan_source
        self.batch_size = batch_size
        self.extensions = extensions or [".py"]
        self.exclude_patterns = exclude_patterns or []
        self.analyzer_config = analyzer_config
        self.platform_name = platform_name
        self.target_version = target_version
        self.platform_package = platform_package

    def analyze(self, project: Project) -> Report:
        """Analyze a project and persist its report.

        Args:
            project: Project to scan

        Returns:
            The stored report (a one-finding fallback if the scan failed)

        Raises:
            ConfigurationError: If the analyzer cannot be run as configured
        """
        persisted = False
        error: Exception | None = None

        try:
            report = self._scan(project)
            self.result_store.set(project.name, report)
            persisted = True
            logger.info(
                f"Scanned {project.name}: {report.error_count} errors, "
                f"{report.warning_count} warnings"
            )
            return report

        except AnalyzerCrashError as e:
            logger.error(f"Analyzer crashed while scanning {project.name}: {e.message}")
            fallback = self._fallback_report(project, e.message, e.file, e.line)
            self.result_store.set(project.name, fallback)
            persisted = True
            return fallback

        except ConfigurationError as e:
            error = e
            raise

        except Exception as e:
            logger.exception(f"Scan of {project.name} failed")
            fallback = self._fallback_report(project, str(e) or type(e).__name__)
            self.result_store.set(project.name, fallback)
            persisted = True
            return fallback

        finally:
            if not persisted:
                message = str(error) if error else "Scan was interrupted before a report was recorded"
                logger.error(f"Recording fallback report for {project.name}: {message}")
                try:
                    self.result_store.set(project.name, self._fallback_report(project, message))
                except OSError as e:
                    logger.error(f"Could not record fallback report for {project.name}: {e}")

    def _scan(self, project: Project) -> Report:
        report = Report(date=int(self.clock()))

        discovery = FileDiscovery(project.path, self.extensions, self.exclude_patterns)
        files = discovery.find_source_files()
        logger.info(f"Project {project.name} contains {len(files)} files to process")

        batches = partition(files, self.batch_size)
        for index, batch in enumerate(batches, start=1):
            logger.info(
                f"Processing batch {index}/{len(batches)} of {project.name} ({len(batch)} files)"
            )
            raw = self.batch_analyzer.run_batch(batch, self.analyzer_config)
            try:
                result = decode_batch(raw)
            except BatchDecodeError as e:
                logger.warning(f"Skipping batch {index}/{len(batches)} of {project.name}: {e}")
                continue
            self._merge(report, result)

        for finding in self._metadata_findings(project):
            report.add_finding(finding)
            report.totals.errors += 1

        if project.is_contrib and self.plan_source is not None:
            try:
                report.plans = self.plan_source.fetch_plan(project)
            except AuxiliaryFetchError as e:
                logger.warning(str(e))

        for finding in report.findings:
            self.categorizer.categorize_finding(finding, project.is_contrib)

        self._finalize(report)
        return report

    @staticmethod
    def _merge(report: Report, result: BatchResult) -> None:
        """Merge one batch into the running report."""
        report.totals.errors += result.errors
        for path, messages in result.files.items():
            findings = report.files.setdefault(path, [])
            findings.extend(
                Finding(file=path, line=message["line"], message=message["message"])
                for message in messages
            )

    def _metadata_findings(self, project: Project) -> list[Finding]:
        findings = check_compatibility(project, self.target_version, self.platform_name)
        if self.platform_package:
            findings.extend(check_pyproject(project, self.platform_package, self.target_version))
        return findings

    @staticmethod
    def _finalize(report: Report) -> None:
        """Recompute counters and the suggested next step."""
        report.totals.file_errors = report.finding_count
        report.tally()
        report.totals.next_step = NextStep.MANUAL if report.has_findings else NextStep.RELAX

    def _fallback_report(
        self,
        project: Project,
        message: str,
        file: str | None = None,
        line: int = 0,
    ) -> Report:
        """Build the minimal report recorded after a fatal failure."""
        target = file or str(project.manifest_path or project.path)
        report = Report(date=int(self.clock()), totals=ReportTotals(errors=1))
        report.add_finding(
            Finding(file=target, line=line, message=message, category=Category.UNCATEGORIZED)
        )
        self._finalize(report)
        return report
