"""Log formatting utilities for JSONL output.

Provides ISO 8601 timestamp formatting for the system log file.
"""

from __future__ import annotations

__all__ = ["ISO8601Formatter", "format_iso8601"]

import json
import logging
from datetime import datetime, timezone


def format_iso8601(moment: datetime) -> str:
    """Render an aware datetime as YYYY-MM-DDTHH:MM:SS.sssZ (UTC)."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ISO8601Formatter(logging.Formatter):
    """Custom formatter with ISO 8601 timestamps (UTC) for JSONL output.

    Format: YYYY-MM-DDTHH:MM:SS.sssZ
    Example: 2025-12-04T10:48:37.123Z
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSONL with ISO 8601 timestamp.

        Args:
            record: The log record to format

        Returns:
            str: JSON-formatted log entry with timestamp and level
        """
        timestamp = format_iso8601(datetime.fromtimestamp(record.created, tz=timezone.utc))

        # Handle dict messages (structured logging)
        if isinstance(record.msg, dict):
            log_data = record.msg
        # Handle plain string/other messages
        else:
            log_data = {"message": record.getMessage()}

        log_entry = {"time": timestamp, "level": record.levelname, **log_data}
        return json.dumps(log_entry, default=str)
