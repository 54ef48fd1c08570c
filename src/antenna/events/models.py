"""Watch event models.

A WatchEvent is created by exactly one monitor and never mutated afterwards.
It is either printed/persisted by the event sink or discarded.

Severity ordering (lowest to highest): info < warning < high < critical.
"""

from __future__ import annotations

__all__ = [
    "EventSeverity",
    "EventSource",
    "EventType",
    "WatchEvent",
]

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventType(str, Enum):
    """Closed set of event kinds."""

    FILE_ACCESS = "file_access"
    CONFIG_CHANGE = "config_change"
    SECRET_DETECTED = "secret_detected"
    PROCESS_SPAWN = "process_spawn"


class EventSeverity(str, Enum):
    """Event severity, ordered by `rank`."""

    INFO = "info"
    WARNING = "warning"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: EventSeverity) -> bool:
        """Return True if this severity meets or exceeds `other`."""
        return self.rank >= other.rank


_SEVERITY_RANK: dict[EventSeverity, int] = {
    EventSeverity.INFO: 0,
    EventSeverity.WARNING: 1,
    EventSeverity.HIGH: 2,
    EventSeverity.CRITICAL: 3,
}


class EventSource(str, Enum):
    """Which monitor produced an event."""

    AUDIT_LOG = "auditd"
    CONFIG_DIR = "fs.watch"
    TRANSCRIPTS = "transcripts"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WatchEvent(BaseModel):
    """A classified security signal.

    Attributes:
        timestamp: When the monitor observed the signal (UTC).
        type: Event kind.
        severity: Event severity.
        source: Monitor that produced the event.
        message: Human-readable one-liner.
        details: Open-ended structured payload (file, key, exe, ...).
    """

    timestamp: datetime = Field(default_factory=_utcnow)
    type: EventType
    severity: EventSeverity
    source: EventSource
    message: str
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Event logs written by other tools may carry naive timestamps
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
