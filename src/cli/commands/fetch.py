"""Fetch command for reading the next batch of S3 event files."""

from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from src.cli.options import conf_option, load_source_config
from src.common.config import get_settings
from src.common.spark import create_spark_session
from src.observability.metrics import MetricsExporter
from src.sources.checkpoint_store import FileCheckpointStore
from src.sources.errors import SourceError
from src.sources.s3events.source import S3EventsIncrSource

console = Console()


@click.command()
@conf_option
@click.option("--checkpoint", help="Checkpoint to start from (defaults to the stored one)")
@click.option("--checkpoint-file", type=click.Path(dir_okay=False), help="Checkpoint file")
@click.option("--source-limit", type=int, default=0, show_default=True, help="Size hint passed to the source")
@click.option("--save/--no-save", default=True, help="Persist the new checkpoint")
@click.option("--show", "show_rows", type=int, default=0, help="Print the first N loaded rows")
@click.option("--serve-metrics", is_flag=True, help="Expose Prometheus metrics on METRICS_PORT while fetching")
def fetch(
    conf: tuple,
    checkpoint: Optional[str],
    checkpoint_file: Optional[str],
    source_limit: int,
    save: bool,
    show_rows: int,
    serve_metrics: bool,
) -> None:
    """
    Fetch the next batch of files referenced by S3 events.

    The checkpoint is read from the checkpoint file unless --checkpoint is
    given, and the new one is written back after a successful fetch.
    """
    store = FileCheckpointStore(checkpoint_file or get_settings().app.checkpoint_file)

    spark = None
    try:
        last_checkpoint = checkpoint if checkpoint is not None else store.load()
        console.print(f"\n[bold blue]Fetching batch after checkpoint {last_checkpoint!r}[/bold blue]\n")

        source_config = load_source_config(conf)
        spark = create_spark_session()
        metrics = MetricsExporter()
        if serve_metrics:
            metrics.start()
        source = S3EventsIncrSource.from_spark(spark, source_config, metrics=metrics)
        batch = source.fetch_next_batch(last_checkpoint, source_limit)

        row_count = batch.dataset.count() if batch.dataset is not None else 0

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Previous checkpoint")
        table.add_column("New checkpoint")
        table.add_column("Rows loaded")
        table.add_row(
            "-" if last_checkpoint is None else last_checkpoint,
            batch.checkpoint,
            str(row_count),
        )
        console.print(table)

        if batch.dataset is not None and show_rows > 0:
            batch.dataset.show(show_rows, truncate=False)

        if save:
            store.save(batch.checkpoint)
            console.print(f"[green]✓ Checkpoint {batch.checkpoint} saved to {store.path}[/green]")

    except SourceError as e:
        console.print(f"[red]✗ Fetch failed: {e}[/red]")
        raise click.Abort()
    finally:
        if spark is not None:
            spark.stop()
