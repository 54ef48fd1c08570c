"""Event-log file: one serialized WatchEvent per line.

The watcher appends to this file (opened in append mode for every write) and
the incident correlator reads it back. Readers only trust complete,
newline-terminated lines so a concurrently growing file is safe to read.
"""

from __future__ import annotations

__all__ = ["append_event", "read_events"]

from pathlib import Path

from pydantic import ValidationError

from antenna.events.models import WatchEvent
from antenna.telemetry.system_logger import get_system_logger
from antenna.utils.file_helpers import read_complete_lines


def append_event(path: Path, event: WatchEvent) -> None:
    """Append one event as a JSON line.

    Args:
        path: Event-log file. Parent directories are created if needed.
        event: Event to persist.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(event.model_dump_json() + "\n")


def read_events(path: Path) -> list[WatchEvent]:
    """Read all well-formed events from an event-log file, oldest first.

    Missing files read as empty. Lines that are not valid events are skipped.

    Args:
        path: Event-log file.

    Returns:
        Events in file order.
    """
    if not path.exists():
        return []

    events: list[WatchEvent] = []
    skipped = 0
    for line in read_complete_lines(path):
        try:
            events.append(WatchEvent.model_validate_json(line))
        except ValidationError:
            skipped += 1

    if skipped:
        get_system_logger().debug(
            {
                "event": "event_log_lines_skipped",
                "message": f"Skipped {skipped} unreadable line(s) in {path}",
                "path": str(path),
                "count": skipped,
            }
        )
    return events
