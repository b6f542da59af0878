"""Main CLI entry point for the S3 events incremental source."""

import click
from rich.console import Console

from src.cli.commands.config import config
from src.cli.commands.fetch import fetch
from src.cli.commands.resolve import resolve
from src.observability.logging_config import setup_logging

console = Console()


@click.group()
@click.version_option(version="0.1.0", prog_name="s3incr")
@click.option("--log-level", default=None, help="Logging level (defaults to LOG_LEVEL)")
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """
    S3 Events Incremental Source.

    Loads the objects referenced by S3 event notifications recorded in a
    Delta change-log table, one checkpointed batch at a time.
    """
    ctx.ensure_object(dict)
    setup_logging(log_level)


cli.add_command(fetch)
cli.add_command(resolve)
cli.add_command(config)


if __name__ == "__main__":
    cli()
