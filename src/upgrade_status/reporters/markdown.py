"""Markdown report generator."""

from datetime import datetime
from pathlib import Path

from upgrade_status.aggregator import Summary
from upgrade_status.models import Category, Project, Report
from upgrade_status.reporters.terminal import display_path


class MarkdownReporter:
    """Generates Markdown exports of all project reports."""

    def generate_report(
        self,
        collection: dict[str, list[Project]],
        summaries: dict[str, Summary],
        output_file: Path | None = None,
    ) -> str:
        """Generate a markdown export.

        Args:
            collection: Projects grouped by type
            summaries: Summaries per project type
            output_file: Optional path to save report

        Returns:
            Markdown text
        """
        lines: list[str] = []
        lines.append("# Upgrade Status Report\n")
        lines.append(f"Generated on {datetime.now():%Y-%m-%d %H:%M}.\n")

        for project_type, title in (("custom", "Custom projects"), ("contrib", "Contributed projects")):
            summary = summaries.get(project_type)
            if summary is None or not summary.rows:
                continue

            lines.append(f"## {title}\n")
            lines.append(self._generate_summary_table(summary))
            lines.append("")

            projects = {p.name: p for p in collection.get(project_type, [])}
            for row in summary.rows:
                if row.report is None or not row.report.files:
                    continue
                lines.append(self._generate_project_section(projects[row.name], row.report))
                lines.append("---\n")

        content = "\n".join(lines)
        if output_file:
            output_file.write_text(content, encoding="utf-8")
        return content

    @staticmethod
    def _generate_summary_table(summary: Summary) -> str:
        lines = [
            "| Project | Status | Next step |",
            "|---------|--------|-----------|",
        ]
        for row in summary.rows:
            lines.append(f"| **{row.label}** | {row.status_text} | {row.next_step_label or ''} |")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _generate_project_section(project: Project, report: Report) -> str:
        lines = [f"### {project.display_label}\n"]
        lines.append(f"Scanned on {datetime.fromtimestamp(report.date):%Y-%m-%d %H:%M}.\n")

        for path, findings in report.files.items():
            if not findings:
                continue
            lines.append(f"#### {display_path(path, project.path)}\n")
            lines.append("| Status | Line | Message |")
            lines.append("|--------|------|---------|")
            for finding in findings:
                category = finding.category or Category.UNCATEGORIZED
                message = finding.message.replace("|", "\\|").replace("\n", " ")
                lines.append(f"| {category.label} | {finding.line} | {message} |")
            lines.append("")

        if report.plans:
            lines.append("#### Upstream plans\n")
            lines.append(report.plans)
            lines.append("")

        return "\n".join(lines)
