"""
Console summary of an ingestion run, rendered with rich.

The summary goes to stderr so stdout carries only the per-record echo lines.
"""

from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from csv_ingest.domain.models import IngestResult


def _format_bytes(value: Optional[int]) -> str:
    if value is None:
        return "-"
    mb = value / (1024**2)
    return f"{mb:.1f} MB"


def build_summary_table(result: IngestResult) -> Table:
    """Build a two-column table describing `result`."""
    failed = result.get("error") is not None
    table = Table(
        title="Ingest failed" if failed else "Ingest complete",
        box=box.SIMPLE_HEAVY,
        show_header=False,
        title_style="bold red" if failed else "bold green",
    )
    table.add_column("metric", style="cyan", no_wrap=True)
    table.add_column("value", justify="right")

    table.add_row("file", str(result.get("path", "-")))
    table.add_row("table", str(result.get("table", "-")))
    table.add_row("rows read", f"{result.get('rows_read', 0):,}")
    table.add_row("rows written", f"{result.get('rows_written', 0):,}")
    table.add_row("rows committed", f"{result.get('rows_committed', 0):,}")
    if result.get("rows_skipped"):
        table.add_row("rows skipped", f"{result['rows_skipped']:,}", style="yellow")
    if failed:
        table.add_row("failed at row", str(result.get("failed_row") or "-"), style="red")
    table.add_row("duration", f"{result.get('duration_seconds', 0.0):.2f}s")
    table.add_row("throughput", f"{result.get('throughput_rows_per_sec', 0.0):,.0f} rows/s")
    table.add_row("peak RSS", _format_bytes(result.get("peak_rss_bytes")))
    return table


def print_summary(result: IngestResult, console: Optional[Console] = None) -> None:
    """Render the run summary to `console` (stderr by default)."""
    console = console or Console(stderr=True)
    console.print(build_summary_table(result))


__all__ = ["build_summary_table", "print_summary"]
