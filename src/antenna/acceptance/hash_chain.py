"""Hash chain over ledger lines.

Each ledger record stores, in `prev_hash`, the SHA-256 of the previous line's
exact bytes on disk. Any edit, deletion, insertion or reordering of an
earlier line therefore changes a hash that a later record has committed to.

Verification walks the lines in order:
    expected = GENESIS
    for line in lines:
        line.prev_hash must equal expected
        expected = sha256(raw bytes of line)

Lines are hashed as stored, never decoded first. A blank line or one that
is not valid UTF-8 cannot be a record and breaks the chain where it sits.

Limitations:
    Truncation of the newest records is not detectable from the file alone;
    nothing after them commits to their existence.
"""

from __future__ import annotations

__all__ = [
    "ChainVerification",
    "compute_line_hash",
    "last_line_hash",
    "parse_line",
    "verify_lines",
]

import hashlib
from dataclasses import dataclass

from pydantic import ValidationError

from antenna.acceptance.models import RiskAcceptance
from antenna.constants import GENESIS_HASH, HASH_DISPLAY_LENGTH
from antenna.exceptions import ChainBrokenError, MalformedRecordError


def compute_line_hash(line: bytes) -> str:
    """SHA-256 hex digest of a ledger line's raw bytes (without its newline)."""
    return hashlib.sha256(line).hexdigest()


def last_line_hash(lines: list[bytes]) -> str:
    """Hash the next record must reference: of the last line, or genesis."""
    if not lines:
        return GENESIS_HASH
    return compute_line_hash(lines[-1])


def parse_line(line: bytes, line_number: int) -> RiskAcceptance:
    """Parse one raw ledger line into a record.

    Raises:
        MalformedRecordError: If the line is blank, not UTF-8 or not a valid record.
    """
    if not line.strip():
        raise MalformedRecordError(line_number, "blank line")
    try:
        text = line.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedRecordError(line_number, f"not valid UTF-8 at byte {e.start}") from e
    try:
        return RiskAcceptance.model_validate_json(text)
    except ValidationError as e:
        first = e.errors()[0]["msg"] if e.errors() else str(e)
        raise MalformedRecordError(line_number, first) from e


@dataclass(frozen=True, slots=True)
class ChainVerification:
    """Result of walking a ledger's hash chain.

    Attributes:
        valid: True if every record references its predecessor correctly.
        records: Number of lines inspected.
        index: 1-based line of the first divergence (None when valid).
        expected: Hash the divergent record should have referenced.
        found: Hash the divergent record actually referenced (None if unparsable).
        reason: Human-readable description of the divergence.
    """

    valid: bool
    records: int
    index: int | None = None
    expected: str | None = None
    found: str | None = None
    reason: str | None = None

    @property
    def expected_prefix(self) -> str | None:
        return self.expected[:HASH_DISPLAY_LENGTH] if self.expected else None

    @property
    def found_prefix(self) -> str | None:
        return self.found[:HASH_DISPLAY_LENGTH] if self.found else None

    def raise_if_broken(self) -> None:
        """Raise ChainBrokenError describing the first divergence, if any."""
        if self.valid or self.index is None:
            return
        raise ChainBrokenError(
            self.index,
            expected=self.expected,
            found=self.found,
            reason=self.reason,
        )


def verify_lines(lines: list[bytes]) -> ChainVerification:
    """Verify the hash chain over complete ledger lines.

    A line that does not parse as a RiskAcceptance (including blank and
    non-UTF-8 lines) cannot be chained and is
    reported as a break at that line, never skipped.

    Args:
        lines: Raw ledger lines in file order, without newlines.

    Returns:
        ChainVerification for the first divergence, or a valid result.
    """
    expected = GENESIS_HASH

    for index, line in enumerate(lines, 1):
        try:
            record = parse_line(line, index)
        except MalformedRecordError as e:
            return ChainVerification(
                valid=False,
                records=len(lines),
                index=index,
                expected=expected,
                reason=f"Chain broken at line {index}: malformed record ({e.reason})",
            )

        found = record.prev_hash
        if found != expected:
            return ChainVerification(
                valid=False,
                records=len(lines),
                index=index,
                expected=expected,
                found=found,
                reason=(
                    f"Chain broken at line {index}: expected "
                    f"{expected[:HASH_DISPLAY_LENGTH]}..., got {found[:HASH_DISPLAY_LENGTH]}..."
                ),
            )

        expected = compute_line_hash(line)

    return ChainVerification(valid=True, records=len(lines))
