"""Accept command for antenna CLI.

Records a human risk-acceptance decision in the ledger.
"""

from __future__ import annotations

__all__ = ["accept"]

import sys

import click

from antenna.exceptions import ChainBrokenError

from ..helpers import get_config, open_ledger
from ..styling import style_dim, style_error, style_label, style_success


@click.command()
@click.argument("finding_id")
@click.option("--reason", "-r", required=True, help="Why the risk is accepted")
@click.option("--mitigations", "-m", default="", help="Comma-separated compensating controls")
@click.option(
    "--expires",
    "expires_days",
    type=click.IntRange(min=1),
    help="Days until the acceptance expires (default: 30)",
)
@click.pass_context
def accept(
    ctx: click.Context,
    finding_id: str,
    reason: str,
    mitigations: str,
    expires_days: int | None,
) -> None:
    """Accept the risk of FINDING_ID.

    The ledger hash chain is verified first. If it is broken, nothing is
    written and the command exits with status 1.

    Examples:
        antenna accept CHAN-003 --reason "Internal team channel"
        antenna accept TOOL-001 -r "Needed for builds" -m "Read-only mount,Weekly review"
    """
    config = get_config(ctx)
    ledger = open_ledger(config, warn_user_ledger=True)
    items = [m.strip() for m in mitigations.split(",") if m.strip()]
    days = expires_days or config.ledger.default_expiration_days

    try:
        record = ledger.accept(finding_id, reason, mitigations=items, expiration_days=days)
    except ChainBrokenError as e:
        click.echo(style_error(str(e)), err=True)
        click.echo("Ledger integrity is compromised. Refusing to add a new acceptance.", err=True)
        click.echo(f"Inspect {ledger.path} before accepting further risks.", err=True)
        sys.exit(e.exit_code)
    except OSError as e:
        click.echo(style_error(f"Could not write to {ledger.path}: {e}"), err=True)
        sys.exit(1)

    click.echo(style_success(f"Accepted {record.id}"))
    click.echo(f"  {style_label('Reason')} {record.reason}")
    if record.mitigations:
        click.echo(f"  {style_label('Mitigations')} {', '.join(record.mitigations)}")
    click.echo(f"  {style_label('Expires')} {record.expires_at:%Y-%m-%d}")
    click.echo(style_dim(f"  Ledger: {ledger.path}"))
