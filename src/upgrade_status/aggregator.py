"""Summaries of stored reports across projects."""

from dataclasses import dataclass, field

from upgrade_status.models import NEXT_STEP_INFO, NextStep, Project, Report, UpdateStatus
from upgrade_status.store import ResultStore

NOT_SCANNED = "not-scanned"
NO_KNOWN_ERROR = "no-known-error"
KNOWN_ERRORS = "known-errors"


@dataclass
class ProjectRow:
    """Display row for one project."""

    name: str
    label: str
    type: str
    status: str
    status_text: str
    report_link: str | None
    next_step: NextStep | None
    next_step_label: str | None
    update_text: str | None = None
    update_link: str | None = None
    report: Report | None = None


@dataclass
class Summary:
    """Counters and rows for a list of projects."""

    rows: list[ProjectRow] = field(default_factory=list)
    errors: int = 0
    warnings: int = 0
    projects_with_errors: int = 0
    projects_with_warnings: int = 0
    not_scanned: int = 0
    no_known_errors: int = 0
    known_errors: int = 0
    next_step_groups: dict[str, int] = field(
        default_factory=lambda: {"act": 0, "analyze": 0, "relax": 0}
    )

    @property
    def total(self) -> int:
        return len(self.rows)


def _status_text(report: Report) -> str:
    parts: list[str] = []
    if report.error_count:
        parts.append(f"{report.error_count} error{'s' if report.error_count != 1 else ''}")
    if report.warning_count:
        parts.append(f"{report.warning_count} warning{'s' if report.warning_count != 1 else ''}")
    return ", ".join(parts)


def _update_text(project: Project) -> str:
    if project.update_status == UpdateStatus.ALREADY_LATEST:
        return "Up to date"
    if project.update_version:
        return project.update_version
    if project.update_status in (None, UpdateStatus.NOT_CHECKED, UpdateStatus.NOT_AVAILABLE):
        return "N/A"
    return "Up to date"


class ReportAggregator:
    """Folds stored reports into summary counters and display rows."""

    def __init__(self, result_store: ResultStore) -> None:
        self.result_store = result_store

    def summarize(self, projects: list[Project]) -> Summary:
        """Summarize a list of projects.

        A project has known errors when its report holds at least one error
        or warning; a report with only ignored findings counts as no known
        error.
        """
        summary = Summary()

        for project in sorted(projects, key=lambda p: p.label.lower()):
            report = self.result_store.get(project.name)

            if report is None:
                status = NOT_SCANNED
                status_text = "Not scanned"
                summary.not_scanned += 1
            elif report.has_findings:
                status = KNOWN_ERRORS
                status_text = _status_text(report)
                summary.known_errors += 1
                summary.errors += report.error_count
                summary.warnings += report.warning_count
                if report.error_count:
                    summary.projects_with_errors += 1
                if report.warning_count:
                    summary.projects_with_warnings += 1
            else:
                status = NO_KNOWN_ERROR
                status_text = "No known errors"
                summary.no_known_errors += 1

            info = NEXT_STEP_INFO.get(project.next_step) if project.next_step else None
            if info is not None:
                summary.next_step_groups[info.group] += 1

            row = ProjectRow(
                name=project.name,
                label=project.display_label,
                type=project.type.value,
                status=status,
                status_text=status_text,
                report_link=f"report/{project.type.value}/{project.name}" if report else None,
                next_step=project.next_step,
                next_step_label=info.label if info else None,
                report=report,
            )
            if project.is_contrib:
                row.update_text = _update_text(project)
                row.update_link = project.update_link
            summary.rows.append(row)

        return summary

    def summarize_collection(self, collection: dict[str, list[Project]]) -> dict[str, Summary]:
        """Summarize each project type of a collection."""
        return {
            project_type: self.summarize(projects)
            for project_type, projects in collection.items()
        }
