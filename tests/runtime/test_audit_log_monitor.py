"""Unit tests for the auditd log-tail monitor.

Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from antenna.events.models import EventSeverity, EventSource, EventType, WatchEvent
from antenna.exceptions import SourceUnavailableError
from antenna.runtime.monitors.audit_log import (
    AuditLogMonitor,
    AuditRecord,
    _LogTail,
    classify,
    is_relevant,
    parse_audit_line,
)
from antenna.runtime.monitors.base import MonitorContext

SERVICE_UID = 1001


def _line(key: str | None, *, uid: int = SERVICE_UID, name: str = "/home/openclaw/.ssh/id_rsa") -> str:
    line = (
        f"type=SYSCALL msg=audit(1700000000.123:456): arch=c000003e syscall=257 "
        f"success=yes exit=3 ppid=1 pid=4242 auid={uid} uid={uid} gid={uid} "
        f'comm="cat" exe="/usr/bin/cat" name="{name}"'
    )
    if key is not None:
        line += f' key="{key}"'
    return line


def _sample_log() -> list[str]:
    """Ten lines: three tagged with our prefix, one of them by the service uid."""
    return [
        _line(None),
        _line("other_rule"),
        _line(None, uid=0),
        _line("antenna_ssh", uid=0),
        "type=DAEMON_START msg=audit(1700000000.000:1): op=start ver=3.1",
        _line("antenna_creds", uid=SERVICE_UID, name="/home/openclaw/.aws/credentials"),
        _line("antenna_gpg", uid=2002),
        _line(None),
        _line("sshd_rule"),
        "garbage line without fields",
    ]


class _StopAfter:
    """is_running callable that turns False after `calls` checks."""

    def __init__(self, calls: int) -> None:
        self.remaining = calls

    def __call__(self) -> bool:
        self.remaining -= 1
        return self.remaining >= 0


class TestParseAuditLine:
    """Tests for parse_audit_line."""

    def test_extracts_fields(self) -> None:
        """All known fields are extracted."""
        record = parse_audit_line(_line("antenna_ssh"))

        assert record == AuditRecord(
            key="antenna_ssh",
            type="SYSCALL",
            auid=SERVICE_UID,
            uid=SERVICE_UID,
            exe="/usr/bin/cat",
            name="/home/openclaw/.ssh/id_rsa",
            success="yes",
        )

    @pytest.mark.parametrize(
        "line",
        [
            _line(None),
            _line("sshd_rule"),
            "type=PATH msg=audit(1.0:1): name=\"/etc/passwd\"",
            "",
        ],
    )
    def test_lines_without_our_key_are_skipped(self, line: str) -> None:
        """Lines without a key carrying the prefix yield None."""
        assert parse_audit_line(line) is None

    def test_missing_fields_are_omitted(self) -> None:
        """Absent fields become None rather than failing."""
        record = parse_audit_line('key="antenna_aws"')

        assert record is not None
        assert record.key == "antenna_aws"
        assert record.uid is None
        assert record.name is None

    def test_custom_prefix(self) -> None:
        """The key prefix is configurable."""
        assert parse_audit_line(_line("custom_ssh"), key_prefix="custom_") is not None
        assert parse_audit_line(_line("antenna_ssh"), key_prefix="custom_") is None


class TestRelevanceAndClassification:
    """Tests for is_relevant and classify."""

    def test_relevant_by_auid_or_uid(self) -> None:
        """A record matches the service by audit uid or effective uid."""
        assert is_relevant(AuditRecord(key="k", auid=SERVICE_UID, uid=0), SERVICE_UID)
        assert is_relevant(AuditRecord(key="k", auid=0, uid=SERVICE_UID), SERVICE_UID)
        assert not is_relevant(AuditRecord(key="k", auid=0, uid=0), SERVICE_UID)

    def test_unresolved_account_accepts_everything(self) -> None:
        """Without a resolved uid, every record is relevant."""
        assert is_relevant(AuditRecord(key="k", auid=0, uid=0), None)

    @pytest.mark.parametrize(
        "key,severity,message",
        [
            ("antenna_ssh", EventSeverity.HIGH, "Sensitive file access: /x"),
            ("antenna_aws", EventSeverity.HIGH, "Sensitive file access: /x"),
            ("antenna_gcloud", EventSeverity.HIGH, "Sensitive file access: /x"),
            ("antenna_creds", EventSeverity.HIGH, "Credential file access: /x"),
            ("antenna_gpg", EventSeverity.HIGH, "Credential file access: /x"),
            ("antenna_misc", EventSeverity.WARNING, "Sensitive file access detected"),
        ],
    )
    def test_classify(self, key: str, severity: EventSeverity, message: str) -> None:
        """The audit key determines severity and message."""
        event = classify(AuditRecord(key=key, name="/x", exe="/usr/bin/cat", success="yes"))

        assert event.type is EventType.FILE_ACCESS
        assert event.source is EventSource.AUDIT_LOG
        assert event.severity is severity
        assert event.message == message
        assert event.details == {"key": key, "file": "/x", "exe": "/usr/bin/cat", "success": "yes"}

    def test_classify_without_name(self) -> None:
        """A missing file name reads as unknown and is left out of details."""
        event = classify(AuditRecord(key="antenna_ssh"))

        assert event.message == "Sensitive file access: unknown"
        assert event.details == {"key": "antenna_ssh"}


class TestHandleLine:
    """Tests for AuditLogMonitor.handle_line."""

    def test_sample_log_yields_one_event(self, tmp_path: Path) -> None:
        """Of ten lines, only the tagged line by the service uid produces an event."""
        # Arrange
        monitor = AuditLogMonitor(tmp_path / "audit.log")

        # Act
        events = [e for line in _sample_log() if (e := monitor.handle_line(line, SERVICE_UID))]

        # Assert
        assert len(events) == 1
        assert events[0].message == "Credential file access: /home/openclaw/.aws/credentials"

    def test_unresolved_uid_yields_all_tagged(self, tmp_path: Path) -> None:
        """With no service uid, every tagged line produces an event."""
        monitor = AuditLogMonitor(tmp_path / "audit.log")

        events = [e for line in _sample_log() if (e := monitor.handle_line(line, None)) is not None]

        assert len(events) == 3


class TestLogTail:
    """Tests for incremental reading with truncation and rotation."""

    def test_reads_appended_complete_lines(self, tmp_path: Path) -> None:
        """Only complete lines are returned; partial lines wait for their newline."""
        # Arrange
        path = tmp_path / "audit.log"
        path.write_text("first\n")
        tail = _LogTail(path, from_start=True)

        try:
            # Act
            initial = tail.read_lines()
            with open(path, "a") as f:
                f.write("partial")
            pending = tail.read_lines()
            with open(path, "a") as f:
                f.write(" done\n")
            completed = tail.read_lines()
        finally:
            tail.close()

        # Assert
        assert initial == ["first"]
        assert pending == []
        assert completed == ["partial done"]

    def test_from_end_skips_existing_content(self, tmp_path: Path) -> None:
        """Without from_start, only lines written after opening are read."""
        # Arrange
        path = tmp_path / "audit.log"
        path.write_text("old\n")
        tail = _LogTail(path, from_start=False)

        try:
            # Act
            with open(path, "a") as f:
                f.write("new\n")
            lines = tail.read_lines()
        finally:
            tail.close()

        # Assert
        assert lines == ["new"]

    def test_truncation_restarts_from_beginning(self, tmp_path: Path) -> None:
        """A shrunken file is read again from offset zero."""
        # Arrange
        path = tmp_path / "audit.log"
        path.write_text("line one\nline two\n")
        tail = _LogTail(path, from_start=True)

        try:
            tail.read_lines()

            # Act
            path.write_text("x\n")
            lines = tail.read_lines()
        finally:
            tail.close()

        # Assert
        assert lines == ["x"]

    def test_rotation_reopens_new_file(self, tmp_path: Path) -> None:
        """When the path points to a new inode, the new file is read from the start."""
        # Arrange
        path = tmp_path / "audit.log"
        path.write_text("before\n")
        tail = _LogTail(path, from_start=True)

        try:
            tail.read_lines()
            with open(path, "a") as f:
                f.write("last old line\n")
            rotated = tmp_path / "audit.log.new"
            rotated.write_text("after rotation\n")

            # Act
            os.replace(rotated, path)
            lines = tail.read_lines()
        finally:
            tail.close()

        # Assert
        assert lines == ["last old line", "after rotation"]

    def test_missing_file_during_rotation(self, tmp_path: Path) -> None:
        """A rotated-away path drains the old handle without failing."""
        # Arrange
        path = tmp_path / "audit.log"
        path.write_text("a\n")
        tail = _LogTail(path, from_start=True)

        try:
            tail.read_lines()
            with open(path, "a") as f:
                f.write("b\n")
            path.rename(tmp_path / "audit.log.1")

            # Act
            lines = tail.read_lines()
        finally:
            tail.close()

        # Assert
        assert lines == ["b"]


class TestRun:
    """Tests for AuditLogMonitor.run."""

    @pytest.mark.asyncio
    async def test_missing_log_is_unavailable(self, tmp_path: Path) -> None:
        """A missing audit log raises SourceUnavailableError."""
        monitor = AuditLogMonitor(tmp_path / "missing.log")
        context = MonitorContext(is_running=lambda: True, emit=lambda e: None)

        with pytest.raises(SourceUnavailableError):
            await monitor.run(context)

    @pytest.mark.asyncio
    async def test_emits_relevant_events(self, tmp_path: Path) -> None:
        """Running over the sample log emits exactly one event."""
        # Arrange
        path = tmp_path / "audit.log"
        path.write_text("\n".join(_sample_log()) + "\n")
        monitor = AuditLogMonitor(path, poll_interval=0.01)
        emitted: list[WatchEvent] = []
        context = MonitorContext(
            is_running=_StopAfter(3),
            emit=emitted.append,
            service_uid=SERVICE_UID,
        )

        # Act
        await asyncio.wait_for(monitor.run(context), timeout=5)

        # Assert
        assert len(emitted) == 1
        assert emitted[0].severity is EventSeverity.HIGH

    @pytest.mark.asyncio
    async def test_returns_when_stopped(self, tmp_path: Path) -> None:
        """The monitor returns promptly once the running flag is False."""
        path = tmp_path / "audit.log"
        path.write_text("")
        monitor = AuditLogMonitor(path, poll_interval=0.01)
        context = MonitorContext(is_running=lambda: False, emit=lambda e: None)

        await asyncio.wait_for(monitor.run(context), timeout=1)
