"""asdf-accelerate command line."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import rich.console
import rich.table
import typer
from pydantic import ValidationError

from asdfaccel.config import AcceleratorSettings
from asdfaccel.errors import InvalidConcurrencyError, RegistryUnavailableError
from asdfaccel.manager import PluginSyncManager, write_report
from asdfaccel.models import SyncReport
from asdfaccel.scheduler import JobHandle

EXIT_OK = 0
EXIT_PARTIAL_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_REGISTRY_UNAVAILABLE = 3

_POLL_INTERVAL_SEC = 0.2

app = typer.Typer(
    help="Accelerated plugin sync and status for asdf.",
    no_args_is_help=True,
    add_completion=False,
)
console = rich.console.Console()


def _setup_logger(level: str) -> logging.Logger:
    logger = logging.getLogger("asdfaccel")
    logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


def _build_manager() -> PluginSyncManager:
    return PluginSyncManager(AcceleratorSettings())


def _load_manager(verbose: bool) -> PluginSyncManager:
    try:
        manager = _build_manager()
    except ValidationError as exc:
        console.print(f"[red]✗[/red] Invalid configuration:\n{exc}")
        raise typer.Exit(EXIT_CONFIG_ERROR) from exc
    _setup_logger("DEBUG" if verbose else manager.settings.log_level)
    return manager


@app.command()
def sync(
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", "-e", help="Plugin to skip. Repeatable."
    ),
    only: Optional[List[str]] = typer.Option(
        None, "--only", "-o", help="Sync only this plugin. Repeatable."
    ),
    background: bool = typer.Option(
        False, "--background", "-b", help="Detach the run and poll it; Ctrl+C cancels."
    ),
    jobs: Optional[int] = typer.Option(
        None, "--jobs", "-j", help="Parallel workers (default: CPU count)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=0.001, help="Per-plugin timeout in seconds."
    ),
    report_path: Optional[Path] = typer.Option(
        None, "--report", help="Write the sync report as JSON to this file."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logs."),
) -> None:
    """Update installed plugins in parallel."""
    manager = _load_manager(verbose)
    console.print("[cyan]→[/cyan] Syncing plugins...")

    try:
        manager.resolve_jobs(jobs)
        selected = manager.select(only=only, exclude=exclude)
    except InvalidConcurrencyError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(EXIT_CONFIG_ERROR) from exc
    except RegistryUnavailableError as exc:
        console.print(f"[red]✗[/red] Cannot list plugins: {exc}")
        raise typer.Exit(EXIT_REGISTRY_UNAVAILABLE) from exc

    console.print(f"[green]✓[/green] Found {len(selected)} plugins to sync")

    handle = manager.start(selected, jobs=jobs, timeout=timeout)
    if background:
        console.print(f"[cyan]→[/cyan] Running in background mode (run {handle.run_id})")
    report = _follow(handle, show_progress=background)

    _print_report(report)
    if report_path is not None:
        write_report(report, report_path)
        console.print(f"[green]✓[/green] Report written to {report_path}")

    if report.all_succeeded():
        console.print("[green]✓[/green] Sync complete")
        raise typer.Exit(EXIT_OK)
    raise typer.Exit(EXIT_PARTIAL_FAILURE)


def _follow(handle: JobHandle, *, show_progress: bool) -> SyncReport:
    """Wait for a run; Ctrl+C cancels it and returns the cancelled report."""
    try:
        if not show_progress:
            return handle.wait()
        with console.status("Syncing...") as status:
            while not handle.done():
                report = handle.report
                status.update(f"Syncing... {report.total}/{report.selected} done")
                try:
                    return handle.wait(_POLL_INTERVAL_SEC)
                except TimeoutError:
                    continue
            return handle.wait()
    except KeyboardInterrupt:
        console.print("[yellow]![/yellow] Interrupted, cancelling remaining plugins")
        handle.cancel()
        return handle.wait()


def _print_report(report: SyncReport) -> None:
    if report.total:
        table = rich.table.Table(title="Sync Report")
        table.add_column("Plugin")
        table.add_column("Status", style="bold")
        table.add_column("Detail")
        table.add_column("Time", justify="right")
        for plugin, outcome in report.outcomes:
            if outcome.status == "succeeded":
                status = "[green]synced[/green]"
                detail = ""
            elif outcome.status == "skipped":
                status = "[yellow]skipped[/yellow]"
                detail = outcome.reason or ""
            else:
                status = "[red]failed[/red]"
                detail = f"{outcome.error_type}: {outcome.error_message}"
            duration = f"{outcome.duration_sec:.2f}s" if outcome.duration_sec is not None else "-"
            table.add_row(plugin.name, status, detail, duration)
        console.print(table)

    colour = "green" if report.all_succeeded() else "red"
    console.print(f"[{colour}]{report.summary_line()}[/{colour}]")


@app.command(name="plugins")
def list_plugins(
    urls: bool = typer.Option(False, "--urls", help="Show repository URLs and refs."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logs."),
) -> None:
    """List installed plugins."""
    manager = _load_manager(verbose)
    try:
        plugins = manager.list_plugins()
    except RegistryUnavailableError as exc:
        console.print(f"[red]✗[/red] Cannot list plugins: {exc}")
        raise typer.Exit(EXIT_REGISTRY_UNAVAILABLE) from exc

    if not plugins:
        console.print("No plugins installed")
        return

    if not urls:
        for plugin in plugins:
            console.print(plugin.name)
        return

    table = rich.table.Table(title=f"Installed plugins ({len(plugins)})")
    table.add_column("Plugin")
    table.add_column("URL")
    table.add_column("Ref")
    for plugin in plugins:
        table.add_row(plugin.name, plugin.url or "-", plugin.ref or "-")
    console.print(table)


@app.command()
def health(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logs."),
) -> None:
    """Check that asdf is installed and its plugins can be listed."""
    manager = _load_manager(verbose)
    console.print("[cyan]→[/cyan] Running health check...")

    status = manager.health()
    if not status.asdf_installed:
        console.print("[red]✗[/red] asdf is not installed")
        raise typer.Exit(EXIT_REGISTRY_UNAVAILABLE)

    console.print("[green]✓[/green] asdf is installed")
    if status.asdf_version:
        console.print(f"[green]✓[/green] Version: {status.asdf_version}")
    if status.plugin_count is not None:
        console.print(f"[green]✓[/green] Plugins: {status.plugin_count}")
    console.print(f"[green]✓[/green] System: {status.cpu_count} CPUs")

    if not status.healthy:
        console.print(f"[red]✗[/red] {status.error}")
        raise typer.Exit(EXIT_REGISTRY_UNAVAILABLE)

    console.print("\n[bold green]✓ System is healthy[/bold green]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
