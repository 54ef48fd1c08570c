"""Tamper-evident ledger of human risk-acceptance decisions."""

from __future__ import annotations

__all__ = [
    "AcceptanceLedger",
    "ChainVerification",
    "LedgerContents",
    "LedgerSummary",
    "RiskAcceptance",
    "compute_line_hash",
    "current_principal",
    "resolve_ledger_path",
    "verify_lines",
]

from antenna.acceptance.hash_chain import ChainVerification, compute_line_hash, verify_lines
from antenna.acceptance.ledger import (
    AcceptanceLedger,
    LedgerContents,
    LedgerSummary,
    current_principal,
    resolve_ledger_path,
)
from antenna.acceptance.models import RiskAcceptance
