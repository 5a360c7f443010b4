from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from did_indexer.analysis import get_statistics, unique_notes
from did_indexer.config import IndexerConfig, get_settings
from did_indexer.domain.models import ProgressEvent, Stage
from did_indexer.errors import ConfigError, IndexerError
from did_indexer.exporter import load_records, write_result
from did_indexer.orchestrator import run_indexer
from did_indexer.reporter import print_notes, print_statistics
from did_indexer.utils.logging import configure_logging
from did_indexer.utils.profiler import track_run

app = typer.Typer(help="DID registry indexer CLI.")
console = Console(stderr=True)

_STAGE_LABELS = {
    Stage.IDENTIFIERS: "Fetching token ids",
    Stage.DETAILS: "Fetching domain details",
}


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"RPC={settings.rpc_url} | contract={settings.contract_address or '<unset>'} | "
        f"batch={settings.batch_size} concurrency={settings.concurrency} "
        f"retries={settings.retry_attempts} output={settings.output_file}"
    )


@app.command()
def index(
    rpc_url: Optional[str] = typer.Option(None, "--rpc-url", help="JSON-RPC endpoint."),
    contract: Optional[str] = typer.Option(
        None, "--contract", "-c", help="Registry contract address."
    ),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", "-b", help="Encoded calls per aggregated call."
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-j", help="Aggregated calls in flight at once."
    ),
    retries: Optional[int] = typer.Option(
        None, "--retries", "-r", help="Attempts per aggregated call."
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Where to write the JSON dataset."
    ),
    persist: bool = typer.Option(True, "--persist/--no-persist", help="Write the dataset."),
) -> None:
    """
    Extract every domain from the registry and write the dataset as JSON.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    try:
        config = IndexerConfig.from_settings(
            settings,
            endpoint=rpc_url,
            registry_address=contract,
            batch_size=batch_size,
            concurrency=concurrency,
            retry_attempts=retries,
        )
    except ConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc

    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        tasks: Dict[Stage, int] = {}

        def on_progress(event: ProgressEvent) -> None:
            if event.stage not in _STAGE_LABELS:
                return
            if event.stage not in tasks:
                tasks[event.stage] = progress.add_task(
                    _STAGE_LABELS[event.stage], total=event.total
                )
            progress.update(tasks[event.stage], completed=event.current)

        try:
            with track_run("index") as run_stats:
                result = run_indexer(config, on_progress=on_progress)
        except IndexerError as exc:
            console.print(f"[red]Indexing failed:[/red] {escape(str(exc))}")
            console.print(
                "[dim]Transient faults: raise --retries or lower --concurrency/--batch-size. "
                "Persistent faults: check the RPC endpoint and contract address.[/dim]"
            )
            raise typer.Exit(code=1) from exc

    if persist:
        path = write_result(result, output or Path(settings.output_file), run_stats)
        console.print(f"Saved {len(result.records):,} domains to [bold]{path}[/bold]")
    print_statistics(result.statistics, run_stats=run_stats)


@app.command()
def stats(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Exported dataset."),
) -> None:
    """
    Show statistics of a previously exported dataset.
    """
    records = _load_or_exit(path)
    print_statistics(get_statistics(records), title=f"Statistics for {path.name}")


@app.command()
def notes(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Exported dataset."),
) -> None:
    """
    List the distinct note values of a previously exported dataset.
    """
    print_notes(unique_notes(_load_or_exit(path)))


def _load_or_exit(path: Path):
    try:
        return load_records(path)
    except IndexerError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
