"""Incident correlator.

Turns a recent window of watch events plus the ledger's active acceptances
into an IncidentReport:
- Timeline: events sorted by timestamp
- Summary: first critical/high event, else the first event, else a placeholder
- Contributions: active acceptances linked to events by ContributionRule
- Evidence: transcript files for the incident date, the gateway log, and an
  audit query hint when audit events are present (listed, never read)
- Recommendations: deduplicated action items by event type and contribution

Contributions are best-effort triage. A match says an accepted risk is
plausibly related to an event, not that it caused it.
"""

from __future__ import annotations

__all__ = ["IncidentCorrelator", "UNKNOWN_INCIDENT", "trailing_window"]

import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, Sequence

from antenna.acceptance.ledger import AcceptanceLedger
from antenna.acceptance.models import RiskAcceptance
from antenna.config import AntennaConfig, IncidentConfig
from antenna.constants import DEFAULT_AUDIT_KEY_PREFIX, DEFAULT_SESSIONS_DIR
from antenna.events.event_log import read_events
from antenna.events.models import EventSeverity, EventSource, WatchEvent
from antenna.incident.models import (
    ConfigSnapshot,
    Contribution,
    EvidenceItem,
    Finding,
    IncidentReport,
)
from antenna.incident.rules import DEFAULT_CONTRIBUTION_RULES, EVENT_RECOMMENDATIONS, ContributionRule

UNKNOWN_INCIDENT = "Unknown incident"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def trailing_window(events: Sequence[WatchEvent], now: datetime, window: timedelta) -> list[WatchEvent]:
    """Most recent contiguous run of events within `window` of `now`.

    Scans backward from the newest event and stops at the first one older
    than the window. Returns events oldest first.
    """
    selected: list[WatchEvent] = []
    for event in reversed(events):
        if now - event.timestamp > window:
            break
        selected.append(event)
    selected.reverse()
    return selected


class IncidentCorrelator:
    """Builds incident reports from events and the acceptance ledger."""

    def __init__(
        self,
        ledger: AcceptanceLedger | None,
        config: IncidentConfig,
        *,
        sessions_dir: Path = DEFAULT_SESSIONS_DIR,
        audit_key_prefix: str = DEFAULT_AUDIT_KEY_PREFIX,
        rules: Sequence[ContributionRule] = DEFAULT_CONTRIBUTION_RULES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize correlator.

        Args:
            ledger: Acceptance ledger (read-only). None means no acceptances.
            config: Incident settings (event log, gateway log, window, limits).
            sessions_dir: Session transcript tree searched for evidence.
            audit_key_prefix: Audit rule key prefix used in the query hint.
            rules: Contribution rules, applied in order.
            clock: Returns the current aware UTC time.
        """
        self._ledger = ledger
        self._config = config
        self._sessions_dir = sessions_dir
        self._audit_key_prefix = audit_key_prefix
        self._rules = tuple(rules)
        self._clock = clock

    @classmethod
    def from_config(cls, config: AntennaConfig, ledger: AcceptanceLedger | None) -> "IncidentCorrelator":
        return cls(
            ledger,
            config.incident,
            sessions_dir=config.watch.sessions_dir,
            audit_key_prefix=config.watch.audit_key_prefix,
        )

    def correlate(
        self,
        events: Iterable[WatchEvent],
        findings: Iterable[Finding] = (),
    ) -> IncidentReport:
        """Build a report for `events`.

        Args:
            events: Events in any order.
            findings: Point-in-time check results for the snapshot.

        Returns:
            A new IncidentReport.
        """
        now = self._clock()
        timeline = sorted(events, key=lambda e: e.timestamp)
        active = self._active_acceptances(now)
        contributions = self._contributions(active, timeline)

        return IncidentReport(
            id=f"INC-{now:%Y-%m-%d}-{uuid.uuid4().hex[:8]}",
            generated_at=now,
            summary=self._summary(timeline),
            timeline=timeline,
            snapshot=ConfigSnapshot(findings=list(findings), active_acceptances=active),
            contributions=contributions,
            evidence=self._evidence(timeline, now),
            recommendations=self._recommendations(timeline, contributions),
        )

    def last_incident(self) -> IncidentReport | None:
        """Correlate the trailing window of the event-log file.

        Returns:
            A report, or None when the log is absent or empty, or its newest
            event is older than the window.
        """
        events = read_events(self._config.events_file)
        if not events:
            return None

        window = trailing_window(events, self._clock(), timedelta(seconds=self._config.window_seconds))
        if not window:
            return None
        return self.correlate(window)

    # -------------------------------------------------------------------------
    # Report sections
    # -------------------------------------------------------------------------

    def _active_acceptances(self, now: datetime) -> list[RiskAcceptance]:
        if self._ledger is None:
            return []
        return self._ledger.active(now)

    @staticmethod
    def _summary(timeline: list[WatchEvent]) -> str:
        for event in timeline:
            if event.severity in (EventSeverity.CRITICAL, EventSeverity.HIGH):
                return event.message
        if timeline:
            return timeline[0].message
        return UNKNOWN_INCIDENT

    def _contributions(
        self,
        acceptances: list[RiskAcceptance],
        timeline: list[WatchEvent],
    ) -> list[Contribution]:
        contributions: list[Contribution] = []
        for acceptance in acceptances:
            for rule in self._rules:
                if not rule.applies_to(acceptance.id):
                    continue
                matched = next((e for e in timeline if rule.matches(e)), None)
                if matched is None:
                    continue
                contributions.append(
                    Contribution(
                        acceptance_id=acceptance.id,
                        category=rule.category,
                        event=matched.message,
                        rationale=rule.rationale,
                    )
                )
        return contributions

    def _evidence(self, timeline: list[WatchEvent], now: datetime) -> list[EvidenceItem]:
        evidence: list[EvidenceItem] = []
        moment = timeline[0].timestamp if timeline else now
        date = f"{moment:%Y-%m-%d}"

        if self._sessions_dir.is_dir() and self._config.max_transcripts > 0:
            transcripts = sorted(
                path
                for path in self._sessions_dir.rglob("*.jsonl")
                if date in path.name and path.is_file()
            )
            for path in transcripts[: self._config.max_transcripts]:
                evidence.append(
                    EvidenceItem(
                        kind="transcript",
                        location=str(path),
                        description=f"Session transcript from {date}",
                    )
                )

        gateway_log = self._config.gateway_log_path
        if gateway_log.exists():
            evidence.append(
                EvidenceItem(kind="log", location=str(gateway_log), description="Gateway log")
            )

        if any(e.source is EventSource.AUDIT_LOG for e in timeline):
            evidence.append(
                EvidenceItem(
                    kind="audit_query",
                    location=f"ausearch -k {self._audit_key_prefix}* -ts recent",
                    description="Audit records for the tagged file accesses",
                )
            )
        return evidence

    def _recommendations(
        self,
        timeline: list[WatchEvent],
        contributions: list[Contribution],
    ) -> list[str]:
        items: list[str] = []
        for event_type in dict.fromkeys(e.type for e in timeline):
            items.extend(EVENT_RECOMMENDATIONS.get(event_type, ()))

        by_category = {rule.category: rule for rule in self._rules}
        for contribution in contributions:
            rule = by_category.get(contribution.category)
            if rule is not None and rule.recommendation:
                items.append(rule.recommendation)

        return list(dict.fromkeys(items))
