"""Init command for antenna CLI.

Writes a configuration file holding the default settings, ready to edit.
"""

from __future__ import annotations

__all__ = ["init"]

import sys
from pathlib import Path

import click

from antenna.config import AntennaConfig
from antenna.constants import DEFAULT_CONFIG_PATH

from ..styling import style_dim, style_error, style_success


@click.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write a config file with the default settings.

    The file goes to the path given with --config, or to the platform
    config directory. An existing file is kept unless --force is given.
    """
    parent_params = ctx.parent.params if ctx.parent else {}
    config_path: Path = parent_params.get("config_path") or DEFAULT_CONFIG_PATH

    if config_path.exists() and not force:
        click.echo(
            style_error(f"Error: Config already exists at {config_path}. Use --force to overwrite."),
            err=True,
        )
        sys.exit(1)

    try:
        AntennaConfig().save_to_file(config_path)
    except OSError as e:
        click.echo(style_error(f"Error: Could not write {config_path}: {e}"), err=True)
        sys.exit(1)

    click.echo(style_success(f"Configuration saved to {config_path}"))
    click.echo(style_dim("Edit the file, then run: antenna watch"))
