"""Kill switch: decides whether an event warrants stopping the service.

The decision runs once per event and is a single critical section. The
check-then-increment on the hourly counter happens under a lock, so events
arriving from concurrent producers are decided one at a time.

Decision order:
1. No threshold configured -> DISABLED
2. Within the startup cooldown -> COOLDOWN
3. Severity below threshold -> BELOW_THRESHOLD
4. Window older than one hour -> reset counter and window start
5. Counter at maximum -> RATE_LIMITED
6. Otherwise increment counter -> TRIGGER

The rate-limit window is fixed, not sliding. Two kills can land close
together on either side of a window boundary, so the effective cap over an
arbitrary hour can be up to twice `max_kills_per_hour`.
"""

from __future__ import annotations

__all__ = [
    "KillDecision",
    "KillOutcome",
    "KillSwitch",
    "KillSwitchSettings",
]

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from antenna.config import WatchConfig
from antenna.constants import KILL_WINDOW_SECONDS
from antenna.events.models import EventSeverity, WatchEvent


class KillOutcome(str, Enum):
    """Result of evaluating one event."""

    DISABLED = "disabled"
    COOLDOWN = "cooldown"
    BELOW_THRESHOLD = "below_threshold"
    RATE_LIMITED = "rate_limited"
    TRIGGER = "trigger"


@dataclass(frozen=True, slots=True)
class KillDecision:
    """Outcome of a kill evaluation.

    Attributes:
        outcome: What the kill switch decided.
        kills_in_window: Counter value after the decision.
        max_kills: Configured cap per window.
    """

    outcome: KillOutcome
    kills_in_window: int
    max_kills: int

    @property
    def should_kill(self) -> bool:
        return self.outcome is KillOutcome.TRIGGER


@dataclass(frozen=True, slots=True)
class KillSwitchSettings:
    """Immutable kill switch configuration.

    Attributes:
        threshold: Minimum severity that triggers a kill, or None when off.
        max_kills_per_hour: Cap on kills per fixed window.
        startup_cooldown_seconds: Grace period after the watcher starts.
        restart_after_seconds: Optional delay before restarting the service.
    """

    threshold: EventSeverity | None
    max_kills_per_hour: int
    startup_cooldown_seconds: float
    restart_after_seconds: int | None = None

    @classmethod
    def from_config(cls, config: WatchConfig) -> "KillSwitchSettings":
        return cls(
            threshold=EventSeverity(config.kill_on) if config.kill_on else None,
            max_kills_per_hour=config.max_kills_per_hour,
            startup_cooldown_seconds=config.startup_cooldown_seconds,
            restart_after_seconds=config.restart_after_seconds,
        )


class KillSwitch:
    """Rate-limited, cooldown-aware kill decision.

    State is per instance and lives for one watcher run. Time comes from a
    monotonic clock that tests can replace.
    """

    def __init__(
        self,
        settings: KillSwitchSettings,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._lock = threading.Lock()
        self._started_at: float | None = None
        self._window_start: float = 0.0
        self._kills_in_window = 0

    @property
    def settings(self) -> KillSwitchSettings:
        return self._settings

    @property
    def kills_in_window(self) -> int:
        with self._lock:
            return self._kills_in_window

    def mark_started(self, now: float | None = None) -> None:
        """Record the watcher start time. Opens the first rate-limit window."""
        with self._lock:
            started = self._clock() if now is None else now
            self._started_at = started
            self._window_start = started
            self._kills_in_window = 0

    def evaluate(self, event: WatchEvent) -> KillDecision:
        """Decide whether `event` should stop the service.

        A TRIGGER outcome has already been counted against the window.
        """
        with self._lock:
            return self._evaluate_locked(event.severity)

    def _evaluate_locked(self, severity: EventSeverity) -> KillDecision:
        settings = self._settings
        now = self._clock()

        if settings.threshold is None:
            return self._decision(KillOutcome.DISABLED)

        if self._started_at is None:
            self._started_at = now
            self._window_start = now

        if now - self._started_at < settings.startup_cooldown_seconds:
            return self._decision(KillOutcome.COOLDOWN)

        if not severity.at_least(settings.threshold):
            return self._decision(KillOutcome.BELOW_THRESHOLD)

        if now - self._window_start > KILL_WINDOW_SECONDS:
            self._kills_in_window = 0
            self._window_start = now

        if self._kills_in_window >= settings.max_kills_per_hour:
            return self._decision(KillOutcome.RATE_LIMITED)

        self._kills_in_window += 1
        return self._decision(KillOutcome.TRIGGER)

    def _decision(self, outcome: KillOutcome) -> KillDecision:
        return KillDecision(
            outcome=outcome,
            kills_in_window=self._kills_in_window,
            max_kills=self._settings.max_kills_per_hour,
        )
