"""Tests for the system logger's console and file levels."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator

import pytest

from antenna.telemetry import system_logger
from antenna.telemetry.system_logger import (
    configure_system_logger_file,
    get_system_logger,
    setup_logging,
)


@pytest.fixture
def fresh_logger(monkeypatch: pytest.MonkeyPatch) -> Iterator[logging.Logger]:
    """A freshly built system logger; the shared one is restored afterwards."""
    shared = get_system_logger()
    saved_handlers = list(shared.handlers)
    saved_level = shared.level

    monkeypatch.setattr(system_logger, "_system_logger", None)
    monkeypatch.setattr(system_logger, "_stderr_handler", None)
    monkeypatch.setattr(system_logger, "_file_handler_configured", False)

    yield get_system_logger()

    for handler in shared.handlers:
        if handler not in saved_handlers:
            handler.close()
    shared.handlers[:] = saved_handlers
    shared.setLevel(saved_level)


def _records(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestSystemLogFile:
    """Tests for the WARNING-and-above file handler."""

    @pytest.mark.parametrize("file_first", [False, True])
    def test_warnings_reach_file_when_console_is_error(
        self, fresh_logger: logging.Logger, tmp_path: Path, file_first: bool
    ) -> None:
        """A console level of ERROR does not suppress warnings in the file."""
        # Arrange
        log_path = tmp_path / "logs" / "system.jsonl"
        if file_first:
            configure_system_logger_file(log_path)
            setup_logging("ERROR")
        else:
            setup_logging("ERROR")
            configure_system_logger_file(log_path)

        # Act
        fresh_logger.warning({"event": "monitor_degraded", "message": "audit log missing"})
        fresh_logger.info({"event": "watcher_started", "message": "started"})

        # Assert
        records = _records(log_path)
        assert [r["event"] for r in records] == ["monitor_degraded"]
        assert records[0]["level"] == "WARNING"

    def test_console_still_honours_error_level(
        self, capsys: pytest.CaptureFixture[str], fresh_logger: logging.Logger, tmp_path: Path
    ) -> None:
        """Lowering the logger for the file leaves the console quiet."""
        # Arrange
        setup_logging("ERROR")
        configure_system_logger_file(tmp_path / "system.jsonl")

        # Act
        fresh_logger.warning({"event": "monitor_degraded", "message": "audit log missing"})
        fresh_logger.error({"event": "service_stop_failed", "message": "stop failed"})

        # Assert
        err = capsys.readouterr().err
        assert "audit log missing" not in err
        assert "ERROR: stop failed" in err
