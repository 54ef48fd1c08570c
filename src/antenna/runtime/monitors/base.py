"""Monitor contract shared by all watcher inputs.

A monitor runs as one long-lived asyncio task. It must observe
`context.is_running()` at least every `poll_interval` seconds and return
promptly once it turns False. Events go to `context.emit`, which is safe to
call from any thread.

A monitor whose input does not exist raises SourceUnavailableError; the
watcher logs it and the monitor contributes no events for that run.
"""

from __future__ import annotations

__all__ = [
    "Monitor",
    "MonitorContext",
]

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from antenna.events.models import EventSource, WatchEvent


@dataclass(frozen=True, slots=True)
class MonitorContext:
    """What the watcher hands to every monitor.

    Attributes:
        is_running: Shared running flag; monitors exit once it returns False.
        emit: Deliver an event to the sink (thread-safe).
        service_uid: Uid of the monitored service account, or None if unresolved.
    """

    is_running: Callable[[], bool]
    emit: Callable[[WatchEvent], None]
    service_uid: int | None = None


class Monitor(ABC):
    """Base class for watcher inputs."""

    name: str
    source: EventSource

    def __init__(self, poll_interval: float) -> None:
        self.poll_interval = poll_interval

    @abstractmethod
    async def run(self, context: MonitorContext) -> None:
        """Produce events until the running flag turns False.

        Raises:
            SourceUnavailableError: If the input does not exist or is unreadable.
        """
