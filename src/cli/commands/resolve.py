"""Resolve command for previewing the next version range."""

from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from src.cli.options import conf_option, load_source_config
from src.common.config import get_settings
from src.common.spark import create_spark_session
from src.sources.checkpoint_store import FileCheckpointStore
from src.sources.errors import SourceError
from src.sources.s3events.source import S3EventsIncrSource

console = Console()


@click.command()
@conf_option
@click.option("--checkpoint", help="Checkpoint to resolve from (defaults to the stored one)")
@click.option("--checkpoint-file", type=click.Path(dir_okay=False), help="Checkpoint file")
def resolve(conf: tuple, checkpoint: Optional[str], checkpoint_file: Optional[str]) -> None:
    """Show the change-log range the next fetch would read, without reading it."""
    store = FileCheckpointStore(checkpoint_file or get_settings().app.checkpoint_file)

    spark = None
    try:
        last_checkpoint = checkpoint if checkpoint is not None else store.load()
        source_config = load_source_config(conf)
        spark = create_spark_session()
        source = S3EventsIncrSource.from_spark(spark, source_config)
        resolved = source.resolve(last_checkpoint)
    except SourceError as e:
        console.print(f"[red]✗ Failed to resolve checkpoint: {e}[/red]")
        raise click.Abort()
    finally:
        if spark is not None:
            spark.stop()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Last checkpoint", "-" if last_checkpoint is None else repr(last_checkpoint))
    table.add_row("Read mode", resolved.read_mode.value)
    table.add_row("Begin version (exclusive)", str(resolved.version_range.begin))
    table.add_row("End version (inclusive)", str(resolved.version_range.end))
    table.add_row(
        "Caught up",
        "[yellow]yes[/yellow]" if resolved.caught_up else "[green]no[/green]",
    )
    console.print(table)
