"""Store CLI commands: inspect and edit the configuration tree."""

import os

import click
import yaml

from configforge.client import Client
from configforge.config import StoreConfig
from configforge.errors import ConfigForgeError
from configforge.store import ConfigStore


def _open_store(config: StoreConfig) -> ConfigStore:
    try:
        return ConfigStore.from_config(config)
    except ConfigForgeError as e:
        raise click.ClickException(f"{e.response_id}: {e.message}") from e


def _cli_client() -> Client:
    return Client(username=os.environ.get("USER", "(cli)"), ip_address="127.0.0.1")


@click.group()
def store():
    """Configuration store commands."""
    pass


@store.command()
@click.argument("path", default="")
@click.pass_obj
def get(config: StoreConfig, path: str):
    """Print the value at PATH as YAML (the whole tree when omitted)."""
    config_store = _open_store(config)
    if path and not config_store.exists(path):
        raise click.ClickException(f"Path '{path}' does not exist.")
    value = config_store.get(path)
    if isinstance(value, (dict, list)):
        click.echo(yaml.safe_dump(value, sort_keys=False, default_flow_style=False).rstrip())
    else:
        click.echo("" if value is None else str(value))


@store.command(name="set")
@click.argument("path")
@click.argument("value")
@click.option("--note", default=None, help="Change note recorded in the revision and audit trail.")
@click.option("--subsystem", default=None, help="Subsystem to mark dirty.")
@click.pass_obj
def set_value(config: StoreConfig, path: str, value: str, note: str | None, subsystem: str | None):
    """Set PATH to VALUE, parsed as YAML."""
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError as e:
        raise click.ClickException(f"VALUE is not valid YAML: {e}") from e

    config_store = _open_store(config)
    try:
        config_store.write(
            path,
            parsed,
            note or f"Set {path}",
            client=_cli_client(),
            subsystem=subsystem,
        )
    except ConfigForgeError as e:
        raise click.ClickException(f"{e.response_id}: {e.message}") from e
    click.echo(f"Set {path}")


@store.command()
@click.argument("path")
@click.option("--note", default=None, help="Change note recorded in the revision and audit trail.")
@click.option("--subsystem", default=None, help="Subsystem to mark dirty.")
@click.pass_obj
def delete(config: StoreConfig, path: str, note: str | None, subsystem: str | None):
    """Remove the value at PATH."""
    config_store = _open_store(config)
    try:
        with config_store.write_lock(note or f"Deleted {path}", client=_cli_client(), subsystem=subsystem):
            removed = config_store.delete(path)
    except ConfigForgeError as e:
        raise click.ClickException(f"{e.response_id}: {e.message}") from e

    if removed is None:
        raise click.ClickException(f"Path '{path}' does not exist.")
    click.echo(f"Deleted {path}")


@store.command(name="next-id")
@click.argument("path")
@click.pass_obj
def next_id(config: StoreConfig, path: str):
    """Print the id the next record created at PATH would receive."""
    config_store = _open_store(config)
    try:
        click.echo(str(config_store.next_id(path)))
    except ConfigForgeError as e:
        raise click.ClickException(f"{e.response_id}: {e.message}") from e


@store.command()
@click.pass_obj
def dirty(config: StoreConfig):
    """List subsystems with pending changes."""
    config_store = _open_store(config)
    names = config_store.subsystems.dirty_subsystems()
    if not names:
        click.echo("No dirty subsystems.")
        return
    for name in names:
        click.echo(name)


@store.command(name="clear-dirty")
@click.argument("subsystem")
@click.pass_obj
def clear_dirty(config: StoreConfig, subsystem: str):
    """Clear the dirty marker of SUBSYSTEM once its changes are applied."""
    config_store = _open_store(config)
    try:
        config_store.subsystems.clear(subsystem)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Cleared {subsystem}")
