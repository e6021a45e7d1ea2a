"""Rich-powered console output."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from airsweep.models import RunMetrics

_console = Console()


def print_banner(mode: str) -> None:
    """Display the startup banner."""
    _console.print(
        Panel.fit(
            f"[bold cyan]airsweep[/bold cyan]  -  date-swept listing collector ({mode} mode)",
            border_style="cyan",
        )
    )


def print_run_report(metrics: RunMetrics) -> None:
    """Display a summary table for one job run."""
    table = Table(
        title=f"Job {metrics.job_id} Run Report",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Windows", str(metrics.windows))
    table.add_row("Pages OK", str(metrics.pages_ok))
    table.add_row(
        "Pages failed",
        str(metrics.pages_failed),
        style="bold red" if metrics.pages_failed else None,
    )
    table.add_row("Rows inserted", str(metrics.records_inserted))
    table.add_row("Insert failures", str(metrics.insert_failures))
    table.add_row(
        "Stored count",
        "-" if metrics.final_count is None else str(metrics.final_count),
    )
    table.add_row("Duration", f"{metrics.duration_s:.2f}s")
    table.add_row("Started", metrics.started_at)
    table.add_row("Ended", metrics.ended_at or "-")

    _console.print()
    _console.print(table)
    _console.print()
