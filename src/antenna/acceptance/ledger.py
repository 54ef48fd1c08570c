"""Append-only, hash-chained acceptance ledger.

The ledger is a JSONL file with one RiskAcceptance per line. Each record's
`prev_hash` is the SHA-256 of the preceding line's exact bytes, so silent
edits to history break the chain (see hash_chain.py).

Write discipline:
- Lines are only ever appended, never rewritten
- The last-record read and the append happen under an exclusive flock, so
  concurrent writers from other processes cannot fork the chain
- `accept()` verifies the chain before writing and refuses to extend a broken one

Read discipline:
- Only complete, newline-terminated lines are trusted
- Lines are kept as raw bytes; blank or non-UTF-8 lines count as malformed
- A missing file is an empty ledger with a trivially valid chain
- Malformed lines are logged and excluded from loaded lists, but break the
  chain during verification
"""

from __future__ import annotations

__all__ = [
    "AcceptanceLedger",
    "LedgerContents",
    "LedgerSummary",
    "current_principal",
    "resolve_ledger_path",
]

import getpass
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable

from antenna.acceptance.hash_chain import (
    ChainVerification,
    last_line_hash,
    parse_line,
    verify_lines,
)
from antenna.acceptance.models import RiskAcceptance
from antenna.config import LedgerConfig
from antenna.constants import DEFAULT_EXPIRATION_DAYS
from antenna.exceptions import MalformedRecordError
from antenna.telemetry.system_logger import get_system_logger
from antenna.utils.file_helpers import file_lock, read_complete_line_bytes, set_secure_permissions


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def current_principal() -> str:
    """Login name of the user running antenna, or "unknown"."""
    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return "unknown"


def resolve_ledger_path(config: LedgerConfig) -> Path:
    """Pick the ledger file to use.

    The system ledger is used when running as root, or when it already
    exists and is writable by the current user. Otherwise the per-user
    ledger is used.

    Args:
        config: Ledger location settings.

    Returns:
        Path to the selected ledger file.
    """
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return config.system_path
    if config.system_path.exists() and os.access(config.system_path, os.W_OK):
        return config.system_path
    return config.user_path


@dataclass(frozen=True, slots=True)
class LedgerContents:
    """Records that parsed, plus one error per line that did not.

    Attributes:
        records: Well-formed records, oldest first.
        errors: One MalformedRecordError per rejected line.
    """

    records: list[RiskAcceptance]
    errors: list[MalformedRecordError] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class LedgerSummary:
    """Counts of ledger records and the current acceptance per finding.

    Attributes:
        total: All well-formed records.
        active: Records not yet expired.
        expired: Records past their expiration.
        by_finding: Finding id -> most recent active record.
    """

    total: int
    active: int
    expired: int
    by_finding: dict[str, RiskAcceptance]


class AcceptanceLedger:
    """Risk acceptance ledger backed by a JSONL file.

    Example:
        ledger = AcceptanceLedger(resolve_ledger_path(config.ledger))
        ledger.accept("CHAN-003", reason="Internal channel only", mitigations=["VPN"])
        record = ledger.get("CHAN-003")
    """

    def __init__(
        self,
        path: Path,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize ledger.

        Args:
            path: Backing JSONL file.
            clock: Returns the current aware UTC time (injectable for tests).
        """
        self._path = path
        self._clock = clock

    @property
    def path(self) -> Path:
        """Backing file of this ledger."""
        return self._path

    def initialize(self) -> None:
        """Create the ledger directory and file with owner-only permissions.

        Idempotent. An existing file is left untouched apart from permissions.

        Raises:
            OSError: If the directory or file cannot be created.
        """
        parent = self._path.parent
        if not parent.exists():
            parent.mkdir(parents=True, exist_ok=True)
            set_secure_permissions(parent, is_directory=True)

        if not self._path.exists():
            self._path.touch(exist_ok=True)
            set_secure_permissions(self._path)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def append(
        self,
        finding_id: str,
        reason: str,
        mitigations: Iterable[str] = (),
        expiration_days: int = DEFAULT_EXPIRATION_DAYS,
        accepted_by: str | None = None,
    ) -> RiskAcceptance:
        """Append a new acceptance to the end of the ledger.

        This is the raw append mechanism: it does not check the existing chain.
        Callers accepting a risk on behalf of an operator should use `accept()`.

        Args:
            finding_id: Identifier of the accepted finding.
            reason: Why the risk is accepted.
            mitigations: Compensating controls.
            expiration_days: Days until the acceptance expires (must be > 0).
            accepted_by: Accepting principal. Defaults to the current login name.

        Returns:
            The record as written.

        Raises:
            ValueError: If expiration_days is not positive.
            OSError: If the ledger cannot be written (e.g., PermissionError).
        """
        if expiration_days <= 0:
            raise ValueError("expiration_days must be greater than 0")

        self.initialize()

        with open(self._path, "ab") as handle:
            with file_lock(handle):
                lines = read_complete_line_bytes(self._path)
                now = self._clock()
                record = RiskAcceptance(
                    id=finding_id,
                    accepted_at=now,
                    accepted_by=accepted_by or current_principal(),
                    reason=reason,
                    mitigations=tuple(mitigations),
                    expires_at=now + timedelta(days=expiration_days),
                    prev_hash=last_line_hash(lines),
                )

                payload = record.model_dump_json() + "\n"
                if not self._ends_with_newline():
                    # Seal an interrupted write so it reads as its own (broken) line
                    payload = "\n" + payload
                handle.write(payload.encode("utf-8"))
                handle.flush()
                os.fsync(handle.fileno())

        return record

    def accept(
        self,
        finding_id: str,
        reason: str,
        mitigations: Iterable[str] = (),
        expiration_days: int = DEFAULT_EXPIRATION_DAYS,
        accepted_by: str | None = None,
    ) -> RiskAcceptance:
        """Verify the chain, then append a new acceptance.

        Raises:
            ChainBrokenError: If the existing chain is broken. Nothing is written.
            ValueError: If expiration_days is not positive.
            OSError: If the ledger cannot be written.
        """
        self.verify_chain().raise_if_broken()
        return self.append(
            finding_id,
            reason,
            mitigations=mitigations,
            expiration_days=expiration_days,
            accepted_by=accepted_by,
        )

    def _ends_with_newline(self) -> bool:
        size = self._path.stat().st_size
        if size == 0:
            return True
        with open(self._path, "rb") as f:
            f.seek(size - 1)
            return f.read(1) == b"\n"

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _lines(self) -> list[bytes]:
        if not self._path.exists():
            return []
        return read_complete_line_bytes(self._path)

    def load(self) -> LedgerContents:
        """Parse every complete line, collecting one error per malformed line."""
        records: list[RiskAcceptance] = []
        errors: list[MalformedRecordError] = []

        for line_number, line in enumerate(self._lines(), 1):
            try:
                records.append(parse_line(line, line_number))
            except MalformedRecordError as e:
                errors.append(e)

        return LedgerContents(records=records, errors=errors)

    def load_all(self) -> list[RiskAcceptance]:
        """All well-formed records, oldest first.

        Malformed lines are logged and excluded; the remaining lines still load.
        """
        contents = self.load()
        logger = get_system_logger()
        for error in contents.errors:
            logger.warning(
                {
                    "event": "ledger_record_malformed",
                    "message": str(error),
                    "path": str(self._path),
                    "line": error.line_number,
                }
            )
        return contents.records

    def active(self, now: datetime | None = None) -> list[RiskAcceptance]:
        """Records that have not expired, oldest first."""
        now = now or self._clock()
        return [r for r in self.load_all() if r.is_active(now)]

    def get(self, finding_id: str) -> RiskAcceptance | None:
        """Most recent non-expired record for a finding, or None.

        Expired records are treated as absent even though they stay on disk.
        """
        now = self._clock()
        for record in reversed(self.load_all()):
            if record.id == finding_id and record.is_active(now):
                return record
        return None

    def verify_chain(self) -> ChainVerification:
        """Walk the chain and report the first divergence, if any."""
        return verify_lines(self._lines())

    def summary(self) -> LedgerSummary:
        """Count records and map each finding to its current acceptance."""
        now = self._clock()
        records = self.load_all()
        by_finding: dict[str, RiskAcceptance] = {}
        expired = 0

        for record in records:
            if record.is_expired(now):
                expired += 1
            else:
                # Later records supersede earlier ones
                by_finding[record.id] = record

        return LedgerSummary(
            total=len(records),
            active=len(records) - expired,
            expired=expired,
            by_finding=by_finding,
        )
