"""Acceptances command group for antenna CLI.

Inspect the risk-acceptance ledger: list records, verify the hash chain,
and summarize active and expired acceptances.
"""

from __future__ import annotations

__all__ = ["acceptances"]

import sys
from datetime import datetime, timezone

import click

from ..helpers import get_config, open_ledger
from ..styling import style_dim, style_error, style_header, style_label, style_success

# Exit codes for verify
EXIT_VALID = 0
EXIT_BROKEN = 1


@click.group()
def acceptances() -> None:
    """Risk-acceptance ledger commands."""
    pass


@acceptances.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include expired acceptances")
@click.pass_context
def list_cmd(ctx: click.Context, show_all: bool) -> None:
    """List accepted risks, oldest first."""
    ledger = open_ledger(get_config(ctx))
    now = datetime.now(timezone.utc)
    records = ledger.load_all()
    if not show_all:
        records = [r for r in records if r.is_active(now)]

    if not records:
        click.echo(style_dim("No accepted risks."))
        return

    for record in records:
        status = "expired" if record.is_expired(now) else "active"
        click.echo(
            f"{record.id:<12} {status:<8} expires {record.expires_at:%Y-%m-%d}  "
            f"by {record.accepted_by}: {record.reason}"
        )


@acceptances.command("verify")
@click.pass_context
def verify(ctx: click.Context) -> None:
    """Verify the ledger hash chain.

    Exit codes:
      0 - Chain intact (or ledger empty)
      1 - Chain broken
    """
    ledger = open_ledger(get_config(ctx))
    result = ledger.verify_chain()

    if result.valid:
        click.echo(style_success(f"Hash chain intact ({result.records} records)"))
        click.echo(style_dim(f"  Ledger: {ledger.path}"))
        sys.exit(EXIT_VALID)

    click.echo(style_error(result.reason or f"Chain broken at line {result.index}"), err=True)
    click.echo(f"  {style_label('Line')} {result.index}", err=True)
    click.echo(f"  {style_label('Expected')} {result.expected_prefix}...", err=True)
    click.echo(f"  {style_label('Found')} {result.found_prefix or 'unparsable'}", err=True)
    sys.exit(EXIT_BROKEN)


@acceptances.command("summary")
@click.pass_context
def summary(ctx: click.Context) -> None:
    """Show counts of total, active and expired acceptances."""
    ledger = open_ledger(get_config(ctx))
    result = ledger.summary()

    click.echo(style_header("Accepted Risks"))
    click.echo(f"{style_label('Total')} {result.total}")
    click.echo(f"{style_label('Active')} {result.active}")
    click.echo(f"{style_label('Expired')} {result.expired}")
    for finding_id, record in sorted(result.by_finding.items()):
        click.echo(f"  {finding_id:<12} until {record.expires_at:%Y-%m-%d}  {record.reason}")
