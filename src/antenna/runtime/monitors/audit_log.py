"""Log-tail monitor for the auditd log.

Tails the audit log and turns lines tagged with our audit-rule key prefix
(key="antenna_...") into file_access events.

Parsing is tolerant: each field is extracted independently and absent fields
are simply omitted. Lines without a recognised key are skipped.

Rotation: when the path points to a new inode the file is reopened and read
from the start; when the file shrinks it is read again from offset 0.
"""

from __future__ import annotations

__all__ = [
    "AuditLogMonitor",
    "AuditRecord",
    "classify",
    "is_relevant",
    "parse_audit_line",
]

import asyncio
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from antenna.constants import DEFAULT_AUDIT_KEY_PREFIX, MONITOR_POLL_INTERVAL_SECONDS
from antenna.events.models import EventSeverity, EventSource, EventType, WatchEvent
from antenna.exceptions import SourceUnavailableError
from antenna.runtime.monitors.base import Monitor, MonitorContext
from antenna.telemetry.system_logger import get_system_logger

_TYPE_RE = re.compile(r"type=(\w+)")
_KEY_RE = re.compile(r'key="([^"]+)"')
_AUID_RE = re.compile(r"auid=(\d+)")
_UID_RE = re.compile(r"\suid=(\d+)")
_EXE_RE = re.compile(r'exe="([^"]+)"')
_NAME_RE = re.compile(r'name="([^"]+)"')
_SUCCESS_RE = re.compile(r"success=(\w+)")

# Upper bound on bytes consumed per read so a huge backlog cannot starve the loop
_READ_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True, slots=True)
class AuditRecord:
    """Fields extracted from one audit log line. Any of them may be missing."""

    key: str
    type: str | None = None
    auid: int | None = None
    uid: int | None = None
    exe: str | None = None
    name: str | None = None
    success: str | None = None


def _match(pattern: re.Pattern[str], line: str) -> str | None:
    m = pattern.search(line)
    return m.group(1) if m else None


def _match_int(pattern: re.Pattern[str], line: str) -> int | None:
    value = _match(pattern, line)
    return int(value) if value is not None else None


def parse_audit_line(line: str, key_prefix: str = DEFAULT_AUDIT_KEY_PREFIX) -> AuditRecord | None:
    """Parse an audit line carrying a recognised key.

    Args:
        line: Raw audit log line.
        key_prefix: Required prefix of the audit rule key.

    Returns:
        AuditRecord, or None if the line has no key with `key_prefix`.
    """
    key = _match(_KEY_RE, line)
    if key is None or not key.startswith(key_prefix):
        return None

    return AuditRecord(
        key=key,
        type=_match(_TYPE_RE, line),
        auid=_match_int(_AUID_RE, line),
        uid=_match_int(_UID_RE, line),
        exe=_match(_EXE_RE, line),
        name=_match(_NAME_RE, line),
        success=_match(_SUCCESS_RE, line),
    )


def is_relevant(record: AuditRecord, service_uid: int | None) -> bool:
    """True if the record concerns the monitored service account.

    Every record is relevant when the account could not be resolved.
    """
    if service_uid is None:
        return True
    return record.auid == service_uid or record.uid == service_uid


def classify(record: AuditRecord) -> WatchEvent:
    """Turn a relevant audit record into a file_access event."""
    key = record.key.lower()
    severity = EventSeverity.WARNING
    message = "Sensitive file access detected"

    if "ssh" in key or "aws" in key or "gcloud" in key:
        severity = EventSeverity.HIGH
        message = f"Sensitive file access: {record.name or 'unknown'}"
    elif "creds" in key or "gpg" in key:
        severity = EventSeverity.HIGH
        message = f"Credential file access: {record.name or 'unknown'}"

    details = {
        "key": record.key,
        "file": record.name,
        "exe": record.exe,
        "success": record.success,
    }
    return WatchEvent(
        type=EventType.FILE_ACCESS,
        severity=severity,
        source=EventSource.AUDIT_LOG,
        message=message,
        details={k: v for k, v in details.items() if v is not None},
    )


class _LogTail:
    """Incremental reader of a growing, rotating log file."""

    def __init__(self, path: Path, *, from_start: bool) -> None:
        self._path = path
        self._handle: IO[bytes] = open(path, "rb")
        self._inode = os.fstat(self._handle.fileno()).st_ino
        self._buffer = b""
        if not from_start:
            self._handle.seek(0, os.SEEK_END)

    def close(self) -> None:
        self._handle.close()

    def read_lines(self) -> list[str]:
        """Return complete lines appended since the last call."""
        try:
            stat = self._path.stat()
        except FileNotFoundError:
            # Rotated away and not yet recreated
            return self._drain()

        if stat.st_ino != self._inode:
            lines = self._drain()
            self._reopen()
            return lines + self._drain()

        if stat.st_size < self._handle.tell():
            get_system_logger().info(
                {
                    "event": "audit_log_truncated",
                    "message": f"{self._path} was truncated, reading from start",
                }
            )
            self._handle.seek(0)
            self._buffer = b""

        return self._drain()

    def _reopen(self) -> None:
        get_system_logger().info(
            {
                "event": "audit_log_rotated",
                "message": f"{self._path} was rotated, reopening",
            }
        )
        self._handle.close()
        self._handle = open(self._path, "rb")
        self._inode = os.fstat(self._handle.fileno()).st_ino
        self._buffer = b""

    def _drain(self) -> list[str]:
        data = self._handle.read(_READ_CHUNK_SIZE)
        if not data:
            return []
        self._buffer += data
        *complete, self._buffer = self._buffer.split(b"\n")
        return [line.decode("utf-8", errors="replace") for line in complete if line.strip()]


class AuditLogMonitor(Monitor):
    """Tails the auditd log for lines tagged by our audit rules."""

    name = "audit_log"
    source = EventSource.AUDIT_LOG

    def __init__(
        self,
        path: Path,
        *,
        key_prefix: str = DEFAULT_AUDIT_KEY_PREFIX,
        from_start: bool = True,
        poll_interval: float = MONITOR_POLL_INTERVAL_SECONDS,
    ) -> None:
        super().__init__(poll_interval)
        self.path = path
        self.key_prefix = key_prefix
        self.from_start = from_start

    def handle_line(self, line: str, service_uid: int | None) -> WatchEvent | None:
        """Parse, filter and classify one line. None if it yields no event."""
        record = parse_audit_line(line, self.key_prefix)
        if record is None or not is_relevant(record, service_uid):
            return None
        return classify(record)

    async def run(self, context: MonitorContext) -> None:
        if not self.path.exists():
            raise SourceUnavailableError(self.name, self.path)
        try:
            tail = _LogTail(self.path, from_start=self.from_start)
        except PermissionError as e:
            raise SourceUnavailableError(self.name, self.path, "not readable") from e

        try:
            while context.is_running():
                lines = await asyncio.to_thread(tail.read_lines)
                for line in lines:
                    event = self.handle_line(line, context.service_uid)
                    if event is not None:
                        context.emit(event)
                if not lines:
                    await asyncio.sleep(self.poll_interval)
        finally:
            tail.close()
