"""CLI interface using Typer."""

import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from upgrade_status.config import Config
from upgrade_status.errors import ConfigurationError
from upgrade_status.jobs import JobProgress
from upgrade_status.models import Project
from upgrade_status.reporters import JSONReporter, MarkdownReporter, TerminalReporter
from upgrade_status.services import Services, build_services

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="upgrade-status",
    help="Deprecation scan orchestration and upgrade readiness reports",
    add_completion=False,
)

console = Console()

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to configuration file (TOML)",
)
TYPE_OPTION = typer.Option(
    None,
    "--type",
    "-t",
    help="Project type (custom or contrib)",
)


class OutputFormat(str, Enum):
    """Output format options."""
    terminal = "terminal"
    json = "json"
    markdown = "markdown"


class ExportFormat(str, Enum):
    """Export format options."""
    json = "json"
    markdown = "markdown"


def _services(config_file: Path | None, verbose: bool = False) -> Services:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    try:
        return build_services(Config(config_file))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)


def _load_projects(services: Services, names: list[str], project_type: str | None) -> list[Project]:
    projects = []
    for name in names:
        try:
            projects.append(services.collector.load_project(name, project_type))
        except ConfigurationError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
    return projects


@app.command()
def projects(
    config_file: Path = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """List projects with their scan status and suggested next step."""
    services = _services(config_file, verbose)

    collection = services.collector.collect()
    summaries = services.aggregator.summarize_collection(collection)

    if not any(collection.values()):
        console.print("[yellow]No projects found.[/yellow]")
        raise typer.Exit(0)

    reporter = TerminalReporter(console=console)
    if summaries["custom"].rows:
        reporter.print_summary_table("Custom projects", summaries["custom"])
    if summaries["contrib"].rows:
        reporter.print_summary_table("Contributed projects", summaries["contrib"], show_updates=True)
    reporter.print_statistics(summaries, services.scheduler.last_scan())


@app.command()
def analyze(
    names: list[str] = typer.Argument(..., help="Names of the projects to scan"),
    project_type: str = TYPE_OPTION,
    config_file: Path = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Scan projects right away, without the queue."""
    services = _services(config_file, verbose)
    selected = _load_projects(services, names, project_type)

    reporter = TerminalReporter(console=console)

    for project in selected:
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task(f"[green]Scanning {project.name}...", total=None)
                report = services.runner.analyze(project)
        except ConfigurationError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

        reporter.print_project_report(project, report)


@app.command("run-job")
def run_job(
    name: str = typer.Argument(..., help="Name of the project to scan"),
    project_type: str = TYPE_OPTION,
    config_file: Path = CONFIG_OPTION,
) -> None:
    """Scan one queued project and print its totals as JSON.

    This is what the host runs for each job under loopback dispatch.
    """
    services = _services(config_file)
    project = _load_projects(services, [name], project_type)[0]

    try:
        report = services.runner.analyze(project)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    typer.echo(json.dumps(report.to_record()["data"]["totals"]))


@app.command()
def queue(
    names: list[str] = typer.Argument(None, help="Projects to queue (all projects if omitted)"),
    project_type: str = TYPE_OPTION,
    config_file: Path = CONFIG_OPTION,
) -> None:
    """Queue projects for scanning."""
    services = _services(config_file)

    if names:
        selected = _load_projects(services, names, project_type)
    else:
        collection = services.collector.collect()
        if project_type:
            if project_type not in collection:
                console.print(f"[red]Error:[/red] Invalid project type: {project_type}")
                raise typer.Exit(1)
            selected = collection[project_type]
        else:
            selected = collection["custom"] + collection["contrib"]

    added = services.scheduler.enqueue(selected)
    console.print(f"[green]Queued {added} projects[/green] ({len(selected) - added} already queued)")


@app.command()
def run(
    config_file: Path = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Process queued scans one at a time until the queue is empty."""
    services = _services(config_file, verbose)
    scheduler = services.scheduler

    if scheduler.queue.count() == 0:
        console.print("[yellow]Nothing queued.[/yellow] Use 'queue' first.")
        raise typer.Exit(0)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("[green]Scanning...", total=None)

        def on_progress(state: JobProgress) -> None:
            description = f"[green]{state.message}"
            if state.project:
                description += f" ({state.project}: {state.row_status})"
            progress.update(task, total=state.total, completed=state.completed, description=description)

        final = scheduler.run_all(on_progress)

    console.print(f"[green]✓[/green] {final.message}")


@app.command()
def status(config_file: Path = CONFIG_OPTION) -> None:
    """Show progress of the current scan run."""
    services = _services(config_file)
    scheduler = services.scheduler

    last_scan = scheduler.last_scan()
    if last_scan:
        console.print(f"Last scan completed on {datetime.fromtimestamp(last_scan):%Y-%m-%d %H:%M}")

    if not scheduler.is_running():
        console.print("No scan is running.")
        return

    total = int(scheduler.state.get("number_of_jobs", 0))
    remaining = scheduler.queue.count()
    console.print(f"Scan in progress: {total - remaining} of {total} completed, {remaining} remaining.")


@app.command()
def report(
    name: str = typer.Argument(..., help="Project name"),
    project_type: str = TYPE_OPTION,
    output_format: OutputFormat = typer.Option(
        OutputFormat.terminal,
        "--format",
        "-f",
        help="Output format (terminal, json, markdown)",
    ),
    output: Path = typer.Option(None, "--output", "-o", help="Path to output file"),
    config_file: Path = CONFIG_OPTION,
) -> None:
    """Show the stored report of one project."""
    services = _services(config_file)
    project = _load_projects(services, [name], project_type)[0]
    stored = services.collector.get_results(project.name)

    if output_format == OutputFormat.terminal:
        reporter = TerminalReporter(console=console)
        reporter.print_project_report(project, stored)
        return

    collection = {"custom": [], "contrib": []}
    collection[project.type.value].append(project)
    summaries = services.aggregator.summarize_collection(collection)

    if output_format == OutputFormat.json:
        content = JSONReporter().generate_report(collection, summaries, output)
    else:
        content = MarkdownReporter().generate_report(collection, summaries, output)

    if output:
        console.print(f"[green]✓[/green] Report saved to: {output}")
    else:
        typer.echo(content)


@app.command()
def export(
    output: Path = typer.Option(..., "--output", "-o", help="Path to output file"),
    output_format: ExportFormat = typer.Option(
        ExportFormat.markdown,
        "--format",
        "-f",
        help="Export format (markdown, json)",
    ),
    config_file: Path = CONFIG_OPTION,
) -> None:
    """Export the reports of all projects."""
    services = _services(config_file)
    collection = services.collector.collect()
    summaries = services.aggregator.summarize_collection(collection)

    if output_format == ExportFormat.json:
        JSONReporter().generate_report(collection, summaries, output)
    else:
        MarkdownReporter().generate_report(collection, summaries, output)

    console.print(f"[green]✓[/green] Export saved to: {output}")


@app.command()
def cancel(config_file: Path = CONFIG_OPTION) -> None:
    """Cancel pending scans; reports already computed are kept."""
    services = _services(config_file)
    dropped = services.scheduler.cancel()
    console.print(f"Cancelled {dropped} pending scans.")


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    config_file: Path = CONFIG_OPTION,
) -> None:
    """Cancel pending scans and delete all stored reports."""
    if not yes:
        typer.confirm("Delete all stored scan reports?", abort=True)

    services = _services(config_file)
    deleted = services.scheduler.clear()
    console.print(f"Deleted {deleted} reports.")


@app.command()
def version() -> None:
    """Show version information."""

    from upgrade_status import __version__

    console.print(f"[bold]Upgrade Status[/bold] v{__version__}")


if __name__ == "__main__":
    app()
