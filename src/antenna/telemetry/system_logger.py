"""System logger for operational events.

This module provides a singleton system logger for every operational message
that is not itself a watch event (e.g., monitor degraded to a no-op, service
stop failures, malformed ledger lines, rate-limited kills).

Logging strategy:
- Console (stderr): ALL operational messages at or above the configured level
- File (system.jsonl): Only issues (WARNING, ERROR, CRITICAL), when configured

The file handler is configured separately via configure_system_logger_file()
once the caller knows where logs should live.
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
    "setup_logging",
]

import logging
import sys
from pathlib import Path

from antenna.constants import APP_NAME, DIR_PERMISSIONS
from antenna.utils.logging.iso_formatter import ISO8601Formatter


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output.

    Extracts 'message' or 'event' field from dict messages for cleaner stderr output.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human-readable console output.

        Args:
            record: The log record to format.

        Returns:
            str: Formatted log message with level prefix.
        """
        if isinstance(record.msg, dict):
            msg = record.msg.get("message") or record.msg.get("event", "")
            return f"{record.levelname}: {msg}"
        return f"{record.levelname}: {record.getMessage()}"


# Module-level singleton logger - initialized once on first use
_system_logger: logging.Logger | None = None
_stderr_handler: logging.StreamHandler | None = None  # type: ignore[type-arg]
_file_handler_configured: bool = False


def get_system_logger() -> logging.Logger:
    """Get the singleton system logger instance.

    Creates the logger on first call with stderr handler only.
    File handler is added later via configure_system_logger_file().

    Returns:
        logging.Logger: Configured system logger instance.

    Example:
        >>> from antenna.telemetry.system_logger import get_system_logger
        >>> get_system_logger().warning({"event": "monitor_degraded", "message": "..."})
    """
    global _system_logger, _stderr_handler

    if _system_logger is not None:
        return _system_logger

    _system_logger = logging.getLogger(f"{APP_NAME}.system")
    _system_logger.setLevel(logging.INFO)
    _system_logger.propagate = False  # Don't propagate to root logger

    # Close and remove any existing handlers to avoid duplicates
    for handler in _system_logger.handlers:
        handler.close()
    _system_logger.handlers.clear()

    _stderr_handler = logging.StreamHandler(sys.stderr)
    _stderr_handler.setLevel(logging.INFO)
    _stderr_handler.setFormatter(ConsoleFormatter())
    _system_logger.addHandler(_stderr_handler)

    return _system_logger


def setup_logging(level: str = "INFO") -> None:
    """Set the console verbosity of the system logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR).
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    logger = get_system_logger()
    logger.setLevel(min(numeric, logging.WARNING) if _file_handler_configured else numeric)
    if _stderr_handler is not None:
        _stderr_handler.setLevel(numeric)


def configure_system_logger_file(log_path: Path) -> None:
    """Add a JSONL file handler (WARNING and above) to the system logger.

    Should be called once after config is loaded. Subsequent calls are no-ops.

    Args:
        log_path: Path to the system log file.
    """
    global _file_handler_configured

    if _file_handler_configured:
        return

    logger = get_system_logger()

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        if sys.platform != "win32":
            try:
                log_path.parent.chmod(DIR_PERMISSIONS)
            except OSError:
                pass  # Permission changes might fail on some systems
    except OSError:
        pass  # If we can't create log dir, stderr will still work

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ISO8601Formatter())
    logger.addHandler(file_handler)
    # A quieter console must not hide issues from the file
    logger.setLevel(min(logger.level, logging.WARNING))

    _file_handler_configured = True
