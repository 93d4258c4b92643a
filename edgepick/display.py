"""Rich terminal output for edgepick."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from edgepick.config import CSV_HEADER, FAST_THRESHOLD_MS, MEDIUM_THRESHOLD_MS, SPEED_THRESHOLDS
from edgepick.export import format_row
from edgepick.models import BenchmarkRecord

console = Console()

# Addresses longer than this (IPv6) need the wide address column
_NARROW_ADDRESS_LEN = 15
_NARROW_ADDRESS_WIDTH = 16
_WIDE_ADDRESS_WIDTH = 40


def setup_logging(verbose: bool = False) -> None:
    """Route log records through the shared console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose)],
        force=True,
    )
    # httpx/httpcore debug output drowns the probe log
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _color_for_ms(value: float) -> str:
    """Return a Rich color name based on a delay value."""
    if value <= FAST_THRESHOLD_MS:
        return "green"
    elif value <= MEDIUM_THRESHOLD_MS:
        return "yellow"
    return "red"


def _color_for_speed(value: float) -> str:
    if value >= SPEED_THRESHOLDS["fast"]:
        return "green"
    elif value >= SPEED_THRESHOLDS["medium"]:
        return "yellow"
    return "red"


# ── Progress tracking ─────────────────────────────────────────────────


class ProgressTracker:
    """Live progress line for one pipeline stage."""

    def __init__(self, label: str, total: int):
        self.label = label
        self.total = total
        self.completed = 0
        self.detail = ""
        self.live: Optional[Live] = None

    def _build_table(self) -> Table:
        table = Table(show_header=False, expand=False, box=None)
        table.add_column("Stage", style="bold")
        table.add_column("Progress", min_width=20)
        table.add_column("Detail", style="dim")

        bar_width = 30
        filled = int((self.completed / self.total) * bar_width) if self.total > 0 else 0
        filled = min(filled, bar_width)
        bar = "[green]" + "█" * filled + "[/green]" + "[dim]░[/dim]" * (bar_width - filled)
        table.add_row(self.label, f"{bar} {self.completed}/{self.total}", self.detail)
        return table

    def start(self) -> None:
        self.live = Live(self._build_table(), console=console, refresh_per_second=4)
        self.live.start()

    def update(self, completed: int, detail: str = "") -> None:
        self.completed = completed
        self.detail = detail
        if self.live:
            self.live.update(self._build_table())

    def finish(self) -> None:
        if self.live:
            self.live.stop()


# ── Result rendering ──────────────────────────────────────────────────


def build_results_table(records: Sequence[BenchmarkRecord]) -> Table:
    """Build the result table for the given (already limited) rows."""
    rows = [format_row(r) for r in records]
    wide = any(len(row[0]) > _NARROW_ADDRESS_LEN for row in rows)

    table = Table(
        show_header=True,
        border_style="bright_black",
        expand=False,
        header_style="bold",
    )
    address_width = _WIDE_ADDRESS_WIDTH if wide else _NARROW_ADDRESS_WIDTH
    table.add_column(CSV_HEADER[0], min_width=address_width, no_wrap=True)
    for title in CSV_HEADER[1:]:
        table.add_column(title, justify="right")

    for record, row in zip(records, rows):
        table.add_row(
            row[0],
            row[1],
            row[2],
            Text(row[3], style="red" if record.loss_rate > 0 else ""),
            Text(row[4], style=_color_for_ms(record.delay_ms)),
            Text(row[5], style=_color_for_speed(record.speed_mb)),
        )
    return table


def render_results(
    records: Sequence[BenchmarkRecord],
    print_num: int,
    output_file: Optional[str] = None,
) -> None:
    """Print the first *print_num* results; ``print_num == 0`` prints nothing."""
    if print_num <= 0:
        return
    if not records:
        console.print("\n[dim]No address completed the test, nothing to show.[/dim]")
        return

    shown = records[:min(print_num, len(records))]
    console.print()
    console.print(build_results_table(shown))

    if output_file:
        console.print(f"\n[dim]Full results written to {output_file}[/dim]")


def render_error(message: str) -> None:
    """Display an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def render_warning(message: str) -> None:
    """Display a warning message."""
    console.print(f"[yellow]Warning:[/yellow] {message}")
