"""Config command for showing the effective source configuration."""

import click
from rich.console import Console
from rich.table import Table

from src.cli.options import conf_option, load_source_config
from src.sources.errors import ConfigurationError

console = Console()


@click.command()
@conf_option
def config(conf: tuple) -> None:
    """Show the effective source configuration."""
    try:
        source_config = load_source_config(conf)
    except ConfigurationError as e:
        console.print(f"[red]✗ Invalid configuration: {e}[/red]")
        raise click.Abort()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Property")
    table.add_column("Value")

    for key, value in source_config.to_properties().items():
        shown = "-" if value is None else str(getattr(value, "value", value))
        table.add_row(key, shown)

    console.print(table)
