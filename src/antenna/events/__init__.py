"""Shared event vocabulary for the watcher and the incident correlator."""

from __future__ import annotations

__all__ = [
    "EventSeverity",
    "EventSource",
    "EventType",
    "WatchEvent",
    "append_event",
    "read_events",
]

from antenna.events.event_log import append_event, read_events
from antenna.events.models import EventSeverity, EventSource, EventType, WatchEvent
