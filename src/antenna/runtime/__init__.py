"""Security watcher runtime: monitors, event sink and kill switch."""

from __future__ import annotations

__all__ = [
    "ActionResult",
    "EventSink",
    "KillDecision",
    "KillOutcome",
    "KillSwitch",
    "KillSwitchSettings",
    "SecurityWatcher",
    "ServiceController",
    "WatcherState",
]

from antenna.runtime.kill_switch import KillDecision, KillOutcome, KillSwitch, KillSwitchSettings
from antenna.runtime.service_control import ActionResult, ServiceController
from antenna.runtime.sink import EventSink
from antenna.runtime.watcher import SecurityWatcher, WatcherState
