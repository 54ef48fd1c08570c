"""Incident correlation: events plus accepted risks into a causal report."""

from __future__ import annotations

__all__ = [
    "ConfigSnapshot",
    "Contribution",
    "ContributionRule",
    "DEFAULT_CONTRIBUTION_RULES",
    "EvidenceItem",
    "Finding",
    "IncidentCorrelator",
    "IncidentReport",
]

from antenna.incident.correlator import IncidentCorrelator
from antenna.incident.models import (
    ConfigSnapshot,
    Contribution,
    EvidenceItem,
    Finding,
    IncidentReport,
)
from antenna.incident.rules import DEFAULT_CONTRIBUTION_RULES, ContributionRule
