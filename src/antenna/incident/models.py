"""Incident report models.

An IncidentReport is built fresh on every correlation and never persisted by
antenna itself. All models are frozen and serialize to JSON via pydantic.
"""

from __future__ import annotations

__all__ = [
    "ConfigSnapshot",
    "Contribution",
    "EvidenceItem",
    "Finding",
    "IncidentReport",
]

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from antenna.acceptance.models import RiskAcceptance
from antenna.events.models import WatchEvent


class Finding(BaseModel):
    """A point-in-time check result produced outside the runtime core.

    Attributes:
        id: Finding identifier (e.g., "CHAN-003").
        severity: Severity as reported by the check.
        message: What the check found.
        title: Optional short title.
    """

    id: str
    severity: str
    message: str
    title: str | None = None

    model_config = ConfigDict(frozen=True)


class ConfigSnapshot(BaseModel):
    """Findings and active acceptances at report time."""

    findings: list[Finding] = Field(default_factory=list)
    active_acceptances: list[RiskAcceptance] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Contribution(BaseModel):
    """Heuristic link from an accepted risk to an observed event.

    Best-effort triage, not root-cause analysis.

    Attributes:
        acceptance_id: Finding id of the active acceptance.
        category: Rule category that matched (channel, tool, network).
        event: Message of the first event the rule matched.
        rationale: Why this acceptance may have enabled the event.
    """

    acceptance_id: str
    category: str
    event: str
    rationale: str

    model_config = ConfigDict(frozen=True)


class EvidenceItem(BaseModel):
    """Pointer to material worth inspecting. Evidence is listed, never read.

    Attributes:
        kind: transcript file, log file, or an audit query hint.
        location: File path, or the command to run for audit queries.
        description: One-line explanation.
    """

    kind: Literal["transcript", "log", "audit_query"]
    location: str
    description: str

    model_config = ConfigDict(frozen=True)


class IncidentReport(BaseModel):
    """Causal narrative of a recent window of events.

    Attributes:
        id: INC-<YYYY-MM-DD>-<8 hex>.
        generated_at: When the report was built (UTC).
        summary: One-line summary.
        timeline: Events in timestamp order.
        snapshot: Findings and active acceptances at report time.
        contributions: Acceptance-to-event links with rationale.
        evidence: Files and queries to inspect.
        recommendations: Deduplicated action items.
    """

    id: str
    generated_at: datetime
    summary: str
    timeline: list[WatchEvent]
    snapshot: ConfigSnapshot
    contributions: list[Contribution] = Field(default_factory=list)
    evidence: list[EvidenceItem] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
