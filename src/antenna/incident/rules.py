"""Contribution rules for the incident correlator.

A rule links an active acceptance to the events it may have enabled. Rules
are keyed on the acceptance id prefix and matched with a per-event predicate.
The defaults match on plain substrings of event messages, which is fragile;
callers can pass their own ordered rule list to the correlator.
"""

from __future__ import annotations

__all__ = [
    "CHANNEL_NAMES",
    "DEFAULT_CONTRIBUTION_RULES",
    "EVENT_RECOMMENDATIONS",
    "NETWORK_TERMS",
    "ContributionRule",
    "mentions_any",
]

from dataclasses import dataclass
from typing import Callable

from antenna.events.models import EventType, WatchEvent

CHANNEL_NAMES: tuple[str, ...] = ("telegram", "discord", "whatsapp")
NETWORK_TERMS: tuple[str, ...] = ("gateway", "network")


@dataclass(frozen=True, slots=True)
class ContributionRule:
    """One category of acceptance-to-event link.

    Attributes:
        category: Short category name reported in contributions.
        prefix: Acceptance id prefix this rule applies to (e.g., "CHAN-").
        matches: True if an event falls in this category.
        rationale: Fixed explanation attached to each contribution.
        recommendation: Action item added when the rule matches, if any.
    """

    category: str
    prefix: str
    matches: Callable[[WatchEvent], bool]
    rationale: str
    recommendation: str | None = None

    def applies_to(self, acceptance_id: str) -> bool:
        return acceptance_id.startswith(self.prefix)


def mentions_any(terms: tuple[str, ...]) -> Callable[[WatchEvent], bool]:
    """Predicate: the event message mentions any of `terms` (case-insensitive)."""

    def predicate(event: WatchEvent) -> bool:
        message = event.message.lower()
        return any(term in message for term in terms)

    return predicate


def _is_file_access(event: WatchEvent) -> bool:
    return event.type is EventType.FILE_ACCESS


DEFAULT_CONTRIBUTION_RULES: tuple[ContributionRule, ...] = (
    ContributionRule(
        category="channel",
        prefix="CHAN-",
        matches=mentions_any(CHANNEL_NAMES),
        rationale="Channel policy acceptance may have allowed unauthorized access",
        recommendation="Restrict channel to allowlist",
    ),
    ContributionRule(
        category="tool",
        prefix="TOOL-",
        matches=_is_file_access,
        rationale="Tool/sandbox acceptance may have allowed file system access",
        recommendation="Re-evaluate sandbox settings",
    ),
    ContributionRule(
        category="network",
        prefix="NET-",
        matches=mentions_any(NETWORK_TERMS),
        rationale="Network exposure acceptance may have allowed remote access",
    ),
)

# Action items derived from the event types present in an incident
EVENT_RECOMMENDATIONS: dict[EventType, tuple[str, ...]] = {
    EventType.FILE_ACCESS: (
        "Enable sandbox mode for agents",
        "Add sensitive paths to exec blocked paths",
    ),
    EventType.SECRET_DETECTED: (
        "Rotate any exposed credentials immediately",
        "Enable log redaction",
    ),
}
