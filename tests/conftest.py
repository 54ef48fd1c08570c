"""Shared fixtures for antenna tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

from antenna.acceptance.ledger import AcceptanceLedger
from antenna.events.models import EventSeverity, EventSource, EventType, WatchEvent

NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Settable monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger_path(tmp_path: Path) -> Path:
    return tmp_path / "ledger" / "accepted-risks.jsonl"


@pytest.fixture
def ledger(ledger_path: Path, clock: FakeClock) -> AcceptanceLedger:
    return AcceptanceLedger(ledger_path, clock=clock)


@pytest.fixture
def make_event() -> Callable[..., WatchEvent]:
    """Factory for WatchEvents with sensible defaults."""

    def _make(
        message: str = "Sensitive file access detected",
        *,
        type: EventType = EventType.FILE_ACCESS,
        severity: EventSeverity = EventSeverity.WARNING,
        source: EventSource = EventSource.AUDIT_LOG,
        timestamp: datetime = NOW,
        details: dict[str, Any] | None = None,
    ) -> WatchEvent:
        return WatchEvent(
            timestamp=timestamp,
            type=type,
            severity=severity,
            source=source,
            message=message,
            details=details or {},
        )

    return _make


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def now() -> datetime:
    return NOW
