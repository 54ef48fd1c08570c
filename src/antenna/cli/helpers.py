"""Shared CLI helpers: configuration and ledger access for commands."""

from __future__ import annotations

__all__ = [
    "get_config",
    "open_ledger",
]

import click

from antenna.acceptance.ledger import AcceptanceLedger, resolve_ledger_path
from antenna.config import AntennaConfig

from .styling import style_warning


def get_config(ctx: click.Context) -> AntennaConfig:
    """Configuration loaded by the root command."""
    config = ctx.find_root().obj
    if not isinstance(config, AntennaConfig):
        raise click.ClickException("Configuration not loaded")
    return config


def open_ledger(config: AntennaConfig, *, warn_user_ledger: bool = False) -> AcceptanceLedger:
    """Open the ledger selected by resolve_ledger_path.

    Args:
        config: Loaded configuration.
        warn_user_ledger: Print a warning when falling back to the per-user ledger.
    """
    path = resolve_ledger_path(config.ledger)
    if warn_user_ledger and path == config.ledger.user_path:
        click.echo(
            style_warning(f"Using per-user ledger {path} (run as root for the system ledger)"),
            err=True,
        )
    return AcceptanceLedger(path)
