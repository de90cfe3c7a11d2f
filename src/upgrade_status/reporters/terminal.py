"""Terminal reporter using Rich library."""

from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from upgrade_status.aggregator import KNOWN_ERRORS, NOT_SCANNED, Summary
from upgrade_status.models import Category, Project, Report


def display_path(path: str, root: Path) -> str:
    """Show a report file path relative to the project root when possible."""
    try:
        return Path(path).relative_to(root).as_posix()
    except ValueError:
        return path


class TerminalReporter:
    """Generates terminal output using Rich."""

    def __init__(self, color: bool = True, console: Console | None = None) -> None:
        """Initialize terminal reporter.

        Args:
            color: If True, use colored output
            console: Console to print to (a new one by default)
        """
        self.console = console or Console(color_system="auto" if color else None)

    def print_summary_table(self, title: str, summary: Summary, show_updates: bool = False) -> None:
        """Print one row per project with its scan status and next step."""
        table = Table(title=title, show_header=True, header_style="bold cyan")

        table.add_column("Project", style="bold")
        table.add_column("Status")
        table.add_column("Next step")
        if show_updates:
            table.add_column("Update", justify="center")

        for row in summary.rows:
            status_color = self._get_status_color(row.status)
            cells = [
                Text(row.label),
                Text(row.status_text, style=status_color),
                Text(row.next_step_label or ""),
            ]
            if show_updates:
                cells.append(Text(row.update_text or ""))
            table.add_row(*cells)

        self.console.print(table)

    def print_statistics(self, summaries: dict[str, Summary], last_scan: int | None = None) -> None:
        """Print overall counters across project types."""
        errors = sum(s.errors for s in summaries.values())
        warnings = sum(s.warnings for s in summaries.values())
        with_errors = sum(s.projects_with_errors for s in summaries.values())
        not_scanned = sum(s.not_scanned for s in summaries.values())
        clean = sum(s.no_known_errors for s in summaries.values())

        stats = Text()
        stats.append("Summary: ", style="bold")
        stats.append(f"{errors} errors ", style="bold red" if errors else "green")
        stats.append(f"{warnings} warnings ", style="bold yellow" if warnings else "green")
        stats.append(f"| {with_errors} projects with errors | {clean} with no known errors | ")
        stats.append(f"{not_scanned} not scanned", style="dim")
        if last_scan:
            stats.append(f"\nLast scan: {datetime.fromtimestamp(last_scan):%Y-%m-%d %H:%M}", style="dim")

        self.console.print(Panel(stats, border_style="blue"))

    def print_project_report(self, project: Project, report: Report | None) -> None:
        """Print the findings of one project grouped by file."""
        self.console.print(f"\n[bold]{escape(project.display_label)}[/bold] ({project.type.value})")

        if report is None:
            self.console.print("  Not scanned yet.", style="dim")
            return

        scanned = datetime.fromtimestamp(report.date)
        if not report.has_findings:
            self.console.print(
                Panel(f"No known errors. Scanned on {scanned:%Y-%m-%d %H:%M}.", border_style="green")
            )
        else:
            self.console.print(
                Panel(
                    f"{report.error_count} errors, {report.warning_count} warnings "
                    f"in {sum(1 for m in report.files.values() if m)} files. "
                    f"Scanned on {scanned:%Y-%m-%d %H:%M}.",
                    title="Scan Result",
                    border_style="red" if report.error_count else "yellow",
                )
            )

        for path, findings in report.files.items():
            if not findings:
                continue
            table = Table(title=Text(display_path(path, project.path)), show_header=True, header_style="bold")
            table.add_column("Status", no_wrap=True)
            table.add_column("Line", justify="right")
            table.add_column("Message")

            for finding in findings:
                category = finding.category or Category.UNCATEGORIZED
                color = self._get_category_color(category)
                table.add_row(
                    Text(category.label, style=color),
                    str(finding.line),
                    Text(finding.message),
                )
            self.console.print(table)

        if report.plans:
            self.console.print("\n[bold]Upstream plans:[/bold]")
            self.console.print(Text(f"  {report.plans}"))

        self.console.print("")

    @staticmethod
    def _get_status_color(status: str) -> str:
        if status == KNOWN_ERRORS:
            return "red"
        if status == NOT_SCANNED:
            return "dim"
        return "green"

    @staticmethod
    def _get_category_color(category: Category) -> str:
        colors = {
            Category.OLD: "red",
            Category.SAFE: "red",
            Category.LATER: "yellow",
            Category.UNCATEGORIZED: "blue",
            Category.IGNORE: "dim",
        }
        return colors.get(category, "white")
