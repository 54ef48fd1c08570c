"""Transcript monitor: scans newly appended session records for secrets.

Session transcripts are JSONL files under the sessions tree. Only content
appended after the watcher starts is scanned. Each write schedules a scan
after a short settle delay; further writes to the same file push the scan
back, so a record still being written is never read half-finished. Only
complete, newline-terminated lines are consumed.

Files are read in bounded chunks, and scans run one at a time in a worker
thread so a large transcript never blocks the event loop.
"""

from __future__ import annotations

__all__ = ["TranscriptMonitor"]

import asyncio
from pathlib import Path
from typing import BinaryIO, Iterator

from watchdog.events import EVENT_TYPE_DELETED

from antenna.constants import MONITOR_POLL_INTERVAL_SECONDS, TRANSCRIPT_SETTLE_SECONDS
from antenna.events.models import EventSeverity, EventSource, EventType, WatchEvent
from antenna.exceptions import SourceUnavailableError
from antenna.runtime.monitors.base import Monitor, MonitorContext
from antenna.runtime.monitors.config_dir import ConfigChangeHandler, run_observer
from antenna.runtime.secrets import scan_text
from antenna.telemetry.system_logger import get_system_logger

_TRANSCRIPT_SUFFIX = ".jsonl"

_READ_CHUNK_BYTES = 1024 * 1024


class _FileCursor:
    """Byte offset of the next unread line and its 1-based line number."""

    __slots__ = ("offset", "line")

    def __init__(self, offset: int = 0, line: int = 1) -> None:
        self.offset = offset
        self.line = line


def _complete_lines(f: BinaryIO, chunk_size: int = _READ_CHUNK_BYTES) -> Iterator[bytes]:
    """Yield newline-terminated lines (without the newline) from the current position.

    A trailing fragment without a newline is not yielded.
    """
    pending = b""
    while chunk := f.read(chunk_size):
        pending += chunk
        *lines, pending = pending.split(b"\n")
        yield from lines


def _end_cursor(path: Path, chunk_size: int = _READ_CHUNK_BYTES) -> _FileCursor:
    """Cursor positioned after the last complete line of `path`."""
    cursor = _FileCursor()
    with open(path, "rb") as f:
        offset = 0
        while chunk := f.read(chunk_size):
            newlines = chunk.count(b"\n")
            if newlines:
                cursor.line += newlines
                cursor.offset = offset + chunk.rfind(b"\n") + 1
            offset += len(chunk)
    return cursor


class TranscriptMonitor(Monitor):
    """Emits secret_detected events for secrets appearing in transcripts."""

    name = "transcripts"
    source = EventSource.TRANSCRIPTS

    def __init__(
        self,
        directory: Path,
        *,
        settle_seconds: float = TRANSCRIPT_SETTLE_SECONDS,
        poll_interval: float = MONITOR_POLL_INTERVAL_SECONDS,
    ) -> None:
        super().__init__(poll_interval)
        self.directory = directory
        self.settle_seconds = settle_seconds
        self._cursors: dict[Path, _FileCursor] = {}
        self._pending: dict[Path, asyncio.TimerHandle] = {}
        self._scans: set[asyncio.Task[None]] = set()
        self._scan_lock = asyncio.Lock()

    def prime(self) -> None:
        """Start every existing transcript at its current end."""
        for path in self.directory.rglob(f"*{_TRANSCRIPT_SUFFIX}"):
            try:
                self._cursors[path] = _end_cursor(path)
            except OSError:
                continue

    def scan_file(self, path: Path) -> list[WatchEvent]:
        """Scan complete lines appended to `path` since the last scan."""
        cursor = self._cursors.setdefault(path, _FileCursor())
        events: list[WatchEvent] = []
        try:
            size = path.stat().st_size
            if size < cursor.offset:
                # Truncated or replaced
                cursor.offset, cursor.line = 0, 1
            with open(path, "rb") as f:
                f.seek(cursor.offset)
                for raw in _complete_lines(f):
                    events.extend(self._scan_line(path, raw, cursor.line))
                    cursor.offset += len(raw) + 1
                    cursor.line += 1
        except FileNotFoundError:
            self._cursors.pop(path, None)
            return []
        return events

    def _scan_line(self, path: Path, raw: bytes, line_number: int) -> list[WatchEvent]:
        return [
            WatchEvent(
                type=EventType.SECRET_DETECTED,
                severity=EventSeverity.CRITICAL,
                source=self.source,
                message=f"Secret detected in transcript: {match.pattern} in {path.name}",
                details={
                    "file": str(path),
                    "line": line_number,
                    "pattern": match.pattern,
                    "value_hash": match.value_hash,
                },
            )
            for match in scan_text(raw.decode("utf-8", errors="replace"))
        ]

    async def scan(self, path: Path, context: MonitorContext) -> None:
        """Scan one file off the event loop and emit what it finds."""
        async with self._scan_lock:
            if not context.is_running():
                return
            try:
                events = await asyncio.to_thread(self.scan_file, path)
            except OSError as e:
                get_system_logger().warning(
                    {
                        "event": "transcript_scan_failed",
                        "message": f"Could not scan {path}: {e}",
                        "path": str(path),
                    }
                )
                return
        for event in events:
            context.emit(event)

    async def run(self, context: MonitorContext) -> None:
        if not self.directory.is_dir():
            raise SourceUnavailableError(self.name, self.directory)

        await asyncio.to_thread(self.prime)
        loop = asyncio.get_running_loop()

        def start_scan(path: Path) -> None:
            self._pending.pop(path, None)
            task = loop.create_task(self.scan(path, context))
            self._scans.add(task)
            task.add_done_callback(self._scans.discard)

        def on_change(event_type: str, raw_path: str) -> None:
            path = Path(raw_path)
            if path.suffix != _TRANSCRIPT_SUFFIX:
                return
            if event_type == EVENT_TYPE_DELETED:
                self._cursors.pop(path, None)
                return
            previous = self._pending.pop(path, None)
            if previous is not None:
                previous.cancel()
            self._pending[path] = loop.call_later(self.settle_seconds, start_scan, path)

        handler = ConfigChangeHandler(
            lambda event_type, path: loop.call_soon_threadsafe(on_change, event_type, path)
        )
        try:
            await run_observer(self.directory, handler, context, self.poll_interval)
        finally:
            for pending in self._pending.values():
                pending.cancel()
            self._pending.clear()
            # Scans already in a worker thread finish and report
            if self._scans:
                await asyncio.gather(*self._scans)
