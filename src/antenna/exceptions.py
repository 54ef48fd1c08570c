"""Custom exceptions for antenna.

This module contains all custom exceptions used throughout the package.
Exceptions are organized into two categories:

Integrity and Configuration Errors (surfaced to the operator immediately):
    - ChainBrokenError: Acceptance ledger hash chain has been tampered with
    - MalformedRecordError: A single ledger line could not be parsed
    - ConfigurationError: Configuration file is invalid

Degraded-Mode Errors (logged, the watcher keeps running):
    - SourceUnavailableError: A monitor's input does not exist or is unreadable

Failed service actions and rate-limited kills are not exceptions. The service
controller returns ActionResult(success=False) and the kill switch returns
KillOutcome.RATE_LIMITED.

Usage:
    from antenna.exceptions import ChainBrokenError, SourceUnavailableError
"""

from __future__ import annotations

__all__ = [
    "AntennaError",
    "ChainBrokenError",
    "ConfigurationError",
    "MalformedRecordError",
    "SourceUnavailableError",
]

from pathlib import Path

from antenna.constants import HASH_DISPLAY_LENGTH


class AntennaError(Exception):
    """Base exception for all antenna errors.

    Attributes:
        exit_code: Process exit code used by the CLI.
        failure_type: Category string for logging.
    """

    exit_code: int = 1
    failure_type: str = "unknown"


# =============================================================================
# Integrity Errors
# =============================================================================


class ChainBrokenError(AntennaError):
    """Acceptance ledger hash chain is broken.

    Raised when:
    - A record's prev_hash does not match the hash of the preceding line
    - A line in the ledger is not a valid record (cannot be chained)

    New acceptances must not be written while the chain is broken, since
    appending would extend a forged history.

    Attributes:
        index: 1-based line number of the first divergent record.
        expected: Hash the record should reference (None for unparsable lines).
        found: Hash the record actually references (None for unparsable lines).
        reason: Human-readable description of the divergence.
    """

    exit_code = 1
    failure_type = "chain_broken"

    def __init__(
        self,
        index: int,
        *,
        expected: str | None = None,
        found: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.index = index
        self.expected = expected
        self.found = found
        if reason is None:
            reason = (
                f"Chain broken at line {index}: "
                f"expected {_prefix(expected)}..., got {_prefix(found)}..."
            )
        self.reason = reason
        super().__init__(reason)


class MalformedRecordError(AntennaError):
    """A single ledger line could not be parsed into a RiskAcceptance.

    Malformed lines are logged and excluded when loading, but count as a
    chain break during verification.

    Attributes:
        line_number: 1-based line number in the ledger file.
        reason: Parser error description.
    """

    failure_type = "malformed_record"

    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Malformed record at line {line_number}: {reason}")


class ConfigurationError(AntennaError):
    """Configuration is invalid or incomplete.

    Raised when:
    - Config file does not exist at an explicitly requested path
    - Config file contains invalid JSON
    - Config file fails Pydantic validation

    Exit code 2 indicates configuration failure.
    """

    exit_code = 2
    failure_type = "configuration_failure"


# =============================================================================
# Degraded-Mode Errors
# =============================================================================


class SourceUnavailableError(AntennaError):
    """A monitor's input source does not exist or cannot be read.

    The watcher catches this and degrades the monitor to a no-op for its
    lifetime. It never stops the other monitors.

    Attributes:
        source: Name of the monitor whose input is missing.
        path: The missing/unreadable path.
    """

    failure_type = "source_unavailable"

    def __init__(self, source: str, path: Path, detail: str = "not found") -> None:
        self.source = source
        self.path = path
        super().__init__(f"{source}: {path} {detail}")


def _prefix(value: str | None) -> str:
    if value is None:
        return "None"
    return value[:HASH_DISPLAY_LENGTH]
