"""Risk acceptance record.

One RiskAcceptance is written per accepted finding. Records are immutable
once written; expiry only changes their logical status, never their presence
in the ledger.
"""

from __future__ import annotations

__all__ = ["RiskAcceptance"]

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator


class RiskAcceptance(BaseModel):
    """A human decision to accept the risk of a finding.

    Serialized as one JSON object per ledger line, keys in this order.

    Attributes:
        id: Finding identifier (e.g., "CHAN-003", "TOOL-001").
        accepted_at: When the risk was accepted (UTC).
        accepted_by: Accepting principal (login name).
        reason: Free-text justification.
        mitigations: Compensating controls, in the order given.
        expires_at: After this moment the acceptance is expired.
        prev_hash: SHA-256 hex of the previous ledger line (genesis for the first).
    """

    id: str
    accepted_at: datetime
    accepted_by: str
    reason: str
    mitigations: tuple[str, ...] = ()
    expires_at: datetime
    prev_hash: str

    model_config = ConfigDict(frozen=True)

    @field_validator("accepted_at", "expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_active(self, now: datetime | None = None) -> bool:
        """Return True while `now` is before the expiration timestamp."""
        if now is None:
            now = datetime.now(timezone.utc)
        return now < self.expires_at

    def is_expired(self, now: datetime | None = None) -> bool:
        return not self.is_active(now)
