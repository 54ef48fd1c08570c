"""Fixtures for watcher runtime tests."""

from __future__ import annotations

import asyncio
import io

import pytest

from antenna.events.models import EventSeverity, WatchEvent
from antenna.runtime.kill_switch import KillSwitch, KillSwitchSettings
from antenna.runtime.monitors.base import Monitor, MonitorContext
from antenna.runtime.service_control import ActionResult
from antenna.runtime.sink import EventSink


class FakeController:
    """Records service actions instead of running commands."""

    service_name = "openclaw"

    def __init__(self, *, stop_ok: bool = True, uid: int | None = 1001) -> None:
        self.stop_ok = stop_ok
        self.uid = uid
        self.stops = 0
        self.starts = 0

    def stop_service(self) -> ActionResult:
        self.stops += 1
        if self.stop_ok:
            return ActionResult(True, "systemctl stop openclaw")
        return ActionResult(False, "pkill -f openclaw", "exit code 1")

    def start_service(self) -> ActionResult:
        self.starts += 1
        return ActionResult(True, "systemctl start openclaw")

    def resolve_uid(self) -> int | None:
        return self.uid


class ScriptedMonitor(Monitor):
    """Emits a fixed list of events, then idles until stopped."""

    source = None  # type: ignore[assignment]

    def __init__(self, name: str, events: list[WatchEvent] | None = None) -> None:
        super().__init__(poll_interval=0.01)
        self.name = name
        self.events = events or []
        self.returned = False

    async def run(self, context: MonitorContext) -> None:
        try:
            for event in self.events:
                context.emit(event)
            while context.is_running():
                await asyncio.sleep(self.poll_interval)
        finally:
            self.returned = True


def make_switch(
    threshold: EventSeverity | None = EventSeverity.CRITICAL,
    *,
    max_kills: int = 3,
    restart_after: int | None = None,
) -> KillSwitch:
    settings = KillSwitchSettings(
        threshold=threshold,
        max_kills_per_hour=max_kills,
        startup_cooldown_seconds=0,
        restart_after_seconds=restart_after,
    )
    return KillSwitch(settings)


@pytest.fixture
def controller() -> FakeController:
    return FakeController()


@pytest.fixture
def stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def make_sink(controller: FakeController, stream: io.StringIO):
    """Factory for sinks sharing the controller and stream fixtures."""

    def _make(
        threshold: EventSeverity | None = EventSeverity.CRITICAL,
        *,
        max_kills: int = 3,
        restart_after: int | None = None,
        output_file=None,
    ) -> EventSink:
        switch = make_switch(threshold, max_kills=max_kills, restart_after=restart_after)
        return EventSink(switch, controller, output_file=output_file, stream=stream)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def make_monitor():
    """Factory for ScriptedMonitor instances."""
    return ScriptedMonitor
