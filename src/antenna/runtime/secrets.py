"""Secret-like patterns for transcript scanning.

Matches are reported by pattern name and a short SHA-256 prefix of the
matched text. The matched text itself never leaves this module.
"""

from __future__ import annotations

__all__ = [
    "SECRET_PATTERNS",
    "SecretMatch",
    "SecretPattern",
    "scan_text",
]

import hashlib
import re
from dataclasses import dataclass

# Characters of the SHA-256 hex digest kept for correlation across events
_VALUE_HASH_LENGTH = 16


@dataclass(frozen=True, slots=True)
class SecretPattern:
    name: str
    regex: re.Pattern[str]


@dataclass(frozen=True, slots=True)
class SecretMatch:
    """A secret-like string found in text.

    Attributes:
        pattern: Name of the matching pattern.
        value_hash: SHA-256 prefix of the matched text.
    """

    pattern: str
    value_hash: str


def _p(name: str, expr: str, flags: int = 0) -> SecretPattern:
    return SecretPattern(name, re.compile(expr, flags))


SECRET_PATTERNS: tuple[SecretPattern, ...] = (
    # Order matters: Anthropic keys also match the generic OpenAI shape
    _p("anthropic_api_key", r"sk-ant-[a-zA-Z0-9-]{20,}"),
    _p("openai_api_key", r"sk-[a-zA-Z0-9]{32,}"),
    _p("aws_access_key", r"AKIA[0-9A-Z]{16}"),
    _p("aws_session_key", r"ASIA[0-9A-Z]{16}"),
    _p("github_token", r"ghp_[a-zA-Z0-9]{36}"),
    _p("github_fine_grained_token", r"github_pat_[a-zA-Z0-9]{22}_[a-zA-Z0-9]{59}"),
    _p("github_oauth_token", r"gho_[a-zA-Z0-9]{36}"),
    _p("github_user_token", r"ghu_[a-zA-Z0-9]{36}"),
    _p("github_server_token", r"ghs_[a-zA-Z0-9]{36}"),
    _p("gitlab_token", r"glpat-[a-zA-Z0-9\-_]{20,}"),
    _p("huggingface_token", r"hf_[a-zA-Z]{34}"),
    _p("slack_token", r"xox[baprs]-[0-9]{10,}-[a-zA-Z0-9\-]+"),
    _p("private_key", r"-----BEGIN\s+(?:RSA\s+|EC\s+|OPENSSH\s+|DSA\s+)?PRIVATE\s+KEY-----"),
    _p("database_url", r"(?:postgres|mysql|mongodb)(?:\+srv)?://[^:\s]+:[^@\s]+@", re.IGNORECASE),
)


def _value_hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:_VALUE_HASH_LENGTH]


def scan_text(
    text: str,
    patterns: tuple[SecretPattern, ...] = SECRET_PATTERNS,
) -> list[SecretMatch]:
    """Find secret-like strings in `text`.

    Each distinct matched span is reported once, by the first pattern that
    claims it.

    Args:
        text: Text to scan.
        patterns: Patterns to apply, in priority order.

    Returns:
        Matches in pattern order.
    """
    matches: list[SecretMatch] = []
    claimed: list[tuple[int, int]] = []

    for pattern in patterns:
        for m in pattern.regex.finditer(text):
            start, end = m.span()
            if any(start < c_end and c_start < end for c_start, c_end in claimed):
                continue
            claimed.append((start, end))
            matches.append(SecretMatch(pattern.name, _value_hash(m.group(0))))

    return matches
