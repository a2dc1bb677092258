"""configforge CLI entry point."""

import logging
from pathlib import Path

import click

from configforge.config import StoreConfig


@click.group()
@click.option(
    "--store",
    "store_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration YAML file (overrides CONFIGFORGE_STORE_PATH).",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides CONFIGFORGE_LOG_LEVEL).",
)
@click.pass_context
def cli(ctx: click.Context, store_path: Path | None, log_level: str | None):
    """configforge - model-driven configuration store CLI."""
    config = StoreConfig.from_env()
    if store_path is not None:
        config.path = store_path
    if log_level is not None:
        config.log_level = log_level.upper()

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


# Register subcommand groups
from configforge.cli.store_cmd import store  # noqa: E402

cli.add_command(store)
