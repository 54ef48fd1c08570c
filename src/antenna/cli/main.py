"""Main CLI entry point for antenna.

Defines the CLI group and registers all subcommands.

Commands:
    init         - Write a default config file
    accept       - Accept the risk of a finding (appends to the ledger)
    acceptances  - Ledger inspection (list, verify, summary)
    watch        - Run the security watcher
    incident     - Report the last incident

Subcommand help:
    antenna COMMAND -h         Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli", "main"]

import sys
from pathlib import Path

import click

from antenna import __version__
from antenna.config import load_config
from antenna.exceptions import ConfigurationError
from antenna.telemetry.system_logger import configure_system_logger_file, setup_logging

from .commands.accept import accept
from .commands.acceptances import acceptances
from .commands.incident import incident
from .commands.init import init
from .commands.watch import watch
from .styling import style_error


class ReorderedGroup(click.Group):
    """Custom group that shows commands before custom help text."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after commands section."""
        formatter.write(
            """
Quick Start:
  antenna init                     Write a default config file
  antenna accept CHAN-003 --reason "Internal channel" --mitigations "VPN only"
  antenna acceptances verify       Check the ledger hash chain
  antenna watch --kill-on critical --output ~/.openclaw/antenna-events.jsonl
  antenna incident --last          Explain what just happened
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: platform config dir)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Diagnostic verbosity on stderr",
)
@click.pass_context
def cli(ctx: click.Context, version: bool, config_path: Path | None, log_level: str | None) -> None:
    """antenna: runtime-integrity core of the host security auditor."""
    if version:
        click.echo(f"antenna {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return
    if ctx.invoked_subcommand == "init":
        # init writes the config file and must not need a valid one
        setup_logging(log_level or "INFO")
        return

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(e.exit_code)

    setup_logging(log_level or config.logging.log_level)
    if config.logging.system_log_path is not None:
        configure_system_logger_file(config.logging.system_log_path)
    ctx.obj = config


# Register commands
cli.add_command(accept)
cli.add_command(acceptances)
cli.add_command(incident)
cli.add_command(init)
cli.add_command(watch)


def main() -> None:
    """CLI entry point."""
    cli()
