"""Application-wide constants for antenna.

Constants that define application behavior.
For user-configurable settings per deployment, see config.py.
"""

__all__ = [
    # Application identity
    "APP_NAME",
    "DEFAULT_CONFIG_PATH",
    # Acceptance ledger
    "GENESIS_HASH",
    "HASH_DISPLAY_LENGTH",
    "SYSTEM_LEDGER_PATH",
    "USER_LEDGER_PATH",
    "DEFAULT_EXPIRATION_DAYS",
    "DIR_PERMISSIONS",
    "FILE_PERMISSIONS",
    # Watcher
    "DEFAULT_AUDIT_LOG_PATH",
    "DEFAULT_AUDIT_KEY_PREFIX",
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_SESSIONS_DIR",
    "DEFAULT_MAX_KILLS_PER_HOUR",
    "DEFAULT_STARTUP_COOLDOWN_SECONDS",
    "KILL_WINDOW_SECONDS",
    "MONITOR_POLL_INTERVAL_SECONDS",
    "CONFIG_DEBOUNCE_SECONDS",
    "TRANSCRIPT_SETTLE_SECONDS",
    "IGNORED_FILE_SUFFIXES",
    # Monitored service
    "DEFAULT_SERVICE_NAME",
    "DEFAULT_SERVICE_ACCOUNT",
    "COMMAND_TIMEOUT_SECONDS",
    # Incidents
    "DEFAULT_EVENTS_FILE",
    "DEFAULT_GATEWAY_LOG_PATH",
    "INCIDENT_WINDOW_SECONDS",
    "MAX_TRANSCRIPT_EVIDENCE",
]

from pathlib import Path

from platformdirs import user_config_dir

# ============================================================================
# Application Identity
# ============================================================================

# Application name used for directory names, logger names, etc.
APP_NAME: str = "antenna"

# Platform-specific config file location
# - macOS: ~/Library/Application Support/antenna/config.json
# - Linux: ~/.config/antenna/config.json
DEFAULT_CONFIG_PATH: Path = Path(user_config_dir(APP_NAME)) / "config.json"

# ============================================================================
# Acceptance Ledger
# ============================================================================

# prev_hash of the first record in a ledger (64 zeros, same width as SHA-256 hex)
GENESIS_HASH: str = "0" * 64

# Hash prefix length shown to operators when reporting chain breaks
HASH_DISPLAY_LENGTH: int = 16

# System-wide ledger, used when running as root or when it is writable
SYSTEM_LEDGER_PATH: Path = Path("/var/lib/antenna/accepted-risks.jsonl")

# Per-user fallback ledger
USER_LEDGER_PATH: Path = Path("~/.openclaw/antenna-accepted-risks.jsonl")

# Days until an accepted risk must be re-evaluated
DEFAULT_EXPIRATION_DAYS: int = 30

# Owner-only permissions for the ledger directory and file
DIR_PERMISSIONS: int = 0o700
FILE_PERMISSIONS: int = 0o600

# ============================================================================
# Security Watcher
# ============================================================================

# auditd log and the key prefix our audit rules are tagged with
DEFAULT_AUDIT_LOG_PATH: Path = Path("/var/log/audit/audit.log")
DEFAULT_AUDIT_KEY_PREFIX: str = "antenna_"

# Monitored agent configuration and session transcripts
DEFAULT_CONFIG_DIR: Path = Path("~/.openclaw")
DEFAULT_SESSIONS_DIR: Path = Path("~/.openclaw/agents")

# Kill switch defaults
DEFAULT_MAX_KILLS_PER_HOUR: int = 3
DEFAULT_STARTUP_COOLDOWN_SECONDS: float = 60.0

# Fixed rate-limit window for autonomous stops (seconds)
KILL_WINDOW_SECONDS: float = 3600.0

# How often each monitor checks the running flag (must stay below 1s)
MONITOR_POLL_INTERVAL_SECONDS: float = 0.5

# Suppress repeated config_change events for the same path within this window
CONFIG_DEBOUNCE_SECONDS: float = 1.0

# Wait for writes to settle before scanning a transcript
TRANSCRIPT_SETTLE_SECONDS: float = 0.1

# Editor/lock artifacts that never produce config_change events
IGNORED_FILE_SUFFIXES: tuple[str, ...] = (".tmp", ".lock", ".swp", "~")

# ============================================================================
# Monitored Service
# ============================================================================

DEFAULT_SERVICE_NAME: str = "openclaw"
DEFAULT_SERVICE_ACCOUNT: str = "openclaw"

# Timeout for systemctl / pkill invocations (seconds)
COMMAND_TIMEOUT_SECONDS: int = 30

# ============================================================================
# Incident Correlation
# ============================================================================

# Where `antenna watch --output` is expected to write events
DEFAULT_EVENTS_FILE: Path = Path("~/.openclaw/antenna-events.jsonl")

DEFAULT_GATEWAY_LOG_PATH: Path = Path("/var/log/openclaw/gateway.log")

# Trailing window considered part of the "last incident" (seconds)
INCIDENT_WINDOW_SECONDS: float = 3600.0

# Maximum number of transcript files listed as evidence
MAX_TRANSCRIPT_EVIDENCE: int = 5
