"""Directory-change monitor for the agent configuration tree.

Uses a watchdog Observer (recursive) and hands each filesystem notification
to the event loop. Editor and lock artifacts are ignored, as are the files
antenna itself writes (event log, ledger) when they live in the tree.
Repeated changes to the same path inside the debounce window produce one
event; paths older than the window are forgotten.
"""

from __future__ import annotations

__all__ = ["ConfigChangeHandler", "ConfigDirMonitor", "run_observer"]

import asyncio
import time
from pathlib import Path
from typing import Callable, Iterable

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from antenna.constants import (
    CONFIG_DEBOUNCE_SECONDS,
    IGNORED_FILE_SUFFIXES,
    MONITOR_POLL_INTERVAL_SECONDS,
)
from antenna.events.models import EventSeverity, EventSource, EventType, WatchEvent
from antenna.exceptions import SourceUnavailableError
from antenna.runtime.monitors.base import Monitor, MonitorContext

_CHANGE_EVENT_TYPES = frozenset(
    {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}
)

# Seconds to wait for the observer thread to exit
_OBSERVER_JOIN_TIMEOUT = 5.0


class ConfigChangeHandler(FileSystemEventHandler):
    """Forwards file changes (not directory changes) to a callback.

    Runs on the watchdog observer thread.
    """

    def __init__(self, callback: Callable[[str, str], None]) -> None:
        super().__init__()
        self._callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _CHANGE_EVENT_TYPES:
            return
        path = event.dest_path if event.event_type == EVENT_TYPE_MOVED else event.src_path
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="replace")
        self._callback(event.event_type, path)


async def run_observer(
    directory: Path,
    handler: FileSystemEventHandler,
    context: MonitorContext,
    poll_interval: float,
) -> None:
    """Run a recursive watchdog observer until the running flag turns False."""
    observer = Observer()
    observer.schedule(handler, str(directory), recursive=True)
    observer.start()
    try:
        while context.is_running():
            await asyncio.sleep(poll_interval)
    finally:
        observer.stop()
        await asyncio.to_thread(observer.join, _OBSERVER_JOIN_TIMEOUT)


class ConfigDirMonitor(Monitor):
    """Emits config_change events for files under the configuration tree."""

    name = "config_dir"
    source = EventSource.CONFIG_DIR

    def __init__(
        self,
        directory: Path,
        *,
        debounce_seconds: float = CONFIG_DEBOUNCE_SECONDS,
        poll_interval: float = MONITOR_POLL_INTERVAL_SECONDS,
        ignore_paths: Iterable[Path] = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(poll_interval)
        self.directory = directory
        self.ignore_paths = frozenset(str(p.expanduser().resolve()) for p in ignore_paths)
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._last_seen: dict[str, float] = {}

    def handle_change(self, event_type: str, path: str) -> WatchEvent | None:
        """Build the event for one change, or None if ignored or debounced."""
        if path.endswith(IGNORED_FILE_SUFFIXES):
            return None
        if self.ignore_paths and str(Path(path).resolve()) in self.ignore_paths:
            return None

        now = self._clock()
        self._forget_expired(now)
        last = self._last_seen.get(path)
        if last is not None and now - last < self.debounce_seconds:
            return None
        self._last_seen[path] = now

        try:
            filename = str(Path(path).relative_to(self.directory))
        except ValueError:
            filename = Path(path).name

        return WatchEvent(
            type=EventType.CONFIG_CHANGE,
            severity=EventSeverity.WARNING,
            source=self.source,
            message=f"Config file changed: {filename}",
            details={"event_type": event_type, "filename": filename},
        )

    def _forget_expired(self, now: float) -> None:
        expired = [p for p, seen in self._last_seen.items() if now - seen >= self.debounce_seconds]
        for p in expired:
            del self._last_seen[p]

    async def run(self, context: MonitorContext) -> None:
        if not self.directory.is_dir():
            raise SourceUnavailableError(self.name, self.directory)

        loop = asyncio.get_running_loop()

        def on_change(event_type: str, path: str) -> None:
            event = self.handle_change(event_type, path)
            if event is not None:
                context.emit(event)

        handler = ConfigChangeHandler(
            lambda event_type, path: loop.call_soon_threadsafe(on_change, event_type, path)
        )
        await run_observer(self.directory, handler, context, self.poll_interval)
