"""Rich console utilities for envctl."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.prompt import Confirm
from rich.status import Status
from rich.table import Table

if TYPE_CHECKING:
    from envctl.health import HealthResult
    from envctl.lifecycle import ResourceState
    from envctl.pipeline import PipelineReport

console = Console()

_STATUS_STYLES = {
    "ok": "[green]ok[/green]",
    "warning": "[yellow]warning[/yellow]",
    "failed": "[red]failed[/red]",
    "skipped": "[dim]skipped[/dim]",
}


def print_success(message: str) -> None:
    """Print a green success message with a checkmark."""
    console.print(f"[bold green]✔[/bold green] {message}")


def print_error(message: str) -> None:
    """Print a red error message with an X."""
    console.print(f"[bold red]✘[/bold red] {message}")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]⚠[/bold yellow] {message}")


def print_step(message: str) -> None:
    """Print a blue step indicator."""
    console.print(f"[bold blue]→[/bold blue] {message}")


def create_status(message: str) -> Status:
    """Return a Rich Status context manager for long-running operations.

    Usage::

        with create_status("Stopping..."):
            run_long_operation()
    """
    return console.status(f"[bold cyan]{message}[/bold cyan]", spinner="dots")


def print_report(report: PipelineReport, title: str) -> None:
    """Show each stage's outcome in a table."""
    table = Table(title=title, expand=False)
    table.add_column("Stage")
    table.add_column("Policy", style="dim")
    table.add_column("Result")
    table.add_column("Detail", overflow="fold")
    for outcome in report.outcomes:
        table.add_row(
            outcome.name,
            outcome.policy.value,
            _STATUS_STYLES[outcome.status.value],
            outcome.error or "",
        )
    console.print(table)


def print_health(results: list[HealthResult]) -> None:
    if not results:
        print_warning("No service endpoints discovered, nothing to health-check")
        return
    table = Table(title="Health checks", expand=False)
    table.add_column("Service")
    table.add_column("URL", overflow="fold")
    table.add_column("Result")
    for r in results:
        verdict = "[green]200 OK[/green]" if r.ok else f"[red]{r.error or 'failed'}[/red]"
        table.add_row(r.name, r.url, verdict)
    console.print(table)


def print_states(states: list[ResourceState], title: str) -> None:
    if not states:
        print_warning("No managed resources found")
        return
    table = Table(title=title, expand=False)
    table.add_column("Type")
    table.add_column("Name")
    table.add_column("State")
    for s in states:
        table.add_row(s.kind, s.name, s.state)
    console.print(table)


def confirm_action(message: str) -> bool:
    """Prompt the user for confirmation using Rich."""
    return Confirm.ask(f"[bold yellow]{message}[/bold yellow]")
