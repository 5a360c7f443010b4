from __future__ import annotations

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from did_indexer.domain.models import Statistics
from did_indexer.utils.profiler import RunStats


def _share(count: int, total: int) -> str:
    if not total:
        return "-"
    return f"{count / total * 100:.1f}%"


def print_statistics(
    statistics: Statistics,
    title: str = "DID Registry Statistics",
    run_stats: Optional[RunStats] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render registry statistics as a rich table.

    When run measurements are supplied, duration and peak memory go into the
    caption.
    """
    console = console or Console()

    caption = None
    if run_stats is not None:
        caption = f"Indexed in {run_stats.duration_seconds:.1f}s"
        if run_stats.peak_rss_bytes:
            caption += f" │ Peak memory {run_stats.peak_rss_bytes / (1024 * 1024):.1f} MB"

    table = Table(title=title, box=box.ROUNDED, caption=caption)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="magenta")
    table.add_column("Share", justify="right", style="green")

    total = statistics.total
    table.add_row("Total domains", f"{total:,}", _share(total, total))
    table.add_row("Top-level", f"{statistics.top_level:,}", _share(statistics.top_level, total))
    table.add_row("Subdomains", f"{statistics.subdomains:,}", _share(statistics.subdomains, total))
    table.add_row("With DID", f"{statistics.with_did:,}", _share(statistics.with_did, total))
    table.add_row(
        "Allowing subdomains",
        f"{statistics.allowing_subdomains:,}",
        _share(statistics.allowing_subdomains, total),
    )

    console.print(table)


def print_notes(notes: Sequence[str], console: Optional[Console] = None) -> None:
    """List distinct note values with their position."""
    console = console or Console()

    if not notes:
        console.print("[yellow]No notes found.[/yellow]")
        return

    table = Table(
        title="Distinct note values",
        box=box.ROUNDED,
        caption=f"{len(notes)} distinct value(s)",
    )
    table.add_column("#", justify="right", style="blue")
    table.add_column("Note", style="cyan")
    for index, note in enumerate(notes, start=1):
        table.add_row(str(index), escape(f'"{note}"'))

    console.print(table)
