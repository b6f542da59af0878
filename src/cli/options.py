"""Options shared by CLI commands."""

from typing import Dict, Iterable

import click

from src.common.config import S3EventsSourceConfig, get_settings


def parse_conf(values: Iterable[str]) -> Dict[str, str]:
    """Parse repeated ``key=value`` options into a property mapping."""
    properties: Dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"Expected key=value, got {item!r}", param_hint="--conf")
        properties[key.strip()] = value
    return properties


def load_source_config(conf: Iterable[str]) -> S3EventsSourceConfig:
    """
    Source configuration from ``--conf`` properties.

    Without properties the configuration comes from S3INCR_* environment
    variables and the .env file.
    """
    properties = parse_conf(conf)
    if not properties:
        return get_settings().source
    return S3EventsSourceConfig.from_properties(properties)


conf_option = click.option(
    "--conf",
    "-c",
    multiple=True,
    help="Source property as key=value, e.g. source.s3incr.base.path=s3a://bucket/events",
)
