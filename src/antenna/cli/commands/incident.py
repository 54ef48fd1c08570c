"""Incident command for antenna CLI.

Correlates the trailing hour of the event log with the ledger's active
acceptances and reports what happened.
"""

from __future__ import annotations

__all__ = ["incident"]

import click

from antenna.incident.correlator import IncidentCorrelator
from antenna.incident.models import IncidentReport

from ..helpers import get_config, open_ledger
from ..styling import style_dim, style_header, style_label, style_severity


def _print_report(report: IncidentReport) -> None:
    click.echo(style_header(f"Incident {report.id}"))
    click.echo(f"{style_label('Summary')} {report.summary}")
    click.echo(f"{style_label('Generated')} {report.generated_at:%Y-%m-%d %H:%M:%S} UTC")
    click.echo()

    click.echo(style_header("Timeline"))
    for event in report.timeline:
        click.echo(
            f"  {event.timestamp:%H:%M:%S} {style_severity(event.severity.value)} "
            f"[{event.source.value}] {event.message}"
        )
    click.echo()

    if report.contributions:
        click.echo(style_header("Contributing Acceptances"))
        for contribution in report.contributions:
            click.echo(f"  {contribution.acceptance_id}: {contribution.rationale}")
            click.echo(style_dim(f"    matched: {contribution.event}"))
        click.echo()

    if report.evidence:
        click.echo(style_header("Evidence"))
        for item in report.evidence:
            click.echo(f"  [{item.kind}] {item.location}")
        click.echo()

    if report.recommendations:
        click.echo(style_header("Recommendations"))
        for item in report.recommendations:
            click.echo(f"  - {item}")


@click.command()
@click.option("--last", "last", is_flag=True, help="Report the most recent incident")
@click.option("--json", "as_json", is_flag=True, help="Output the full report as JSON")
@click.pass_context
def incident(ctx: click.Context, last: bool, as_json: bool) -> None:
    """Explain the most recent incident.

    Reads the event log written by `antenna watch --output` and links the
    events to active risk acceptances. Contributions are heuristic triage,
    not proof of cause.

    Examples:
        antenna incident --last
        antenna incident --last --json
    """
    if not last:
        raise click.UsageError("Specify --last to report the most recent incident")

    config = get_config(ctx)
    correlator = IncidentCorrelator.from_config(config, open_ledger(config))
    report = correlator.last_incident()

    if report is None:
        click.echo(style_dim("No incident in the last hour."))
        return

    if as_json:
        click.echo(report.model_dump_json(indent=2))
        return
    _print_report(report)
