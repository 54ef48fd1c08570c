"""Application configuration for antenna.

Defines closed configuration models for logging, the acceptance ledger, the
security watcher, the monitored service and incident correlation. Loosely
typed JSON is validated once, up front, into these models: unknown keys are
rejected and every missing key takes an explicit default, so no call site has
to re-check option presence.

Example usage:
    # Load from config file (defaults if the default location has no file)
    config = AntennaConfig.load_from_file(config_path)

    # Override watcher options from the CLI
    watch = config.watch.model_copy(update={"kill_on": "high"})
"""

from __future__ import annotations

__all__ = [
    "AntennaConfig",
    "ExpandedPath",
    "IncidentConfig",
    "LedgerConfig",
    "LoggingConfig",
    "ServiceConfig",
    "WatchConfig",
    "load_config",
]

import json
from pathlib import Path
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError

from antenna.constants import (
    COMMAND_TIMEOUT_SECONDS,
    CONFIG_DEBOUNCE_SECONDS,
    DEFAULT_AUDIT_KEY_PREFIX,
    DEFAULT_AUDIT_LOG_PATH,
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_EVENTS_FILE,
    DEFAULT_EXPIRATION_DAYS,
    DEFAULT_GATEWAY_LOG_PATH,
    DEFAULT_MAX_KILLS_PER_HOUR,
    DEFAULT_SERVICE_ACCOUNT,
    DEFAULT_SERVICE_NAME,
    DEFAULT_SESSIONS_DIR,
    DEFAULT_STARTUP_COOLDOWN_SECONDS,
    INCIDENT_WINDOW_SECONDS,
    MAX_TRANSCRIPT_EVIDENCE,
    MONITOR_POLL_INTERVAL_SECONDS,
    SYSTEM_LEDGER_PATH,
    TRANSCRIPT_SETTLE_SECONDS,
    USER_LEDGER_PATH,
)
from antenna.exceptions import ConfigurationError
from antenna.utils.file_helpers import set_secure_permissions

# Paths given as "~/..." are expanded when the config is validated
ExpandedPath = Annotated[Path, AfterValidator(lambda p: p.expanduser())]


class _ClosedModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class LoggingConfig(_ClosedModel):
    """Logging configuration settings.

    Attributes:
        log_level: Console verbosity of the system logger.
        system_log_path: Optional JSONL file receiving WARNING and above.
    """

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    system_log_path: ExpandedPath | None = None


class LedgerConfig(_ClosedModel):
    """Acceptance ledger locations.

    The system ledger is used when running as root or when it already exists
    and is writable; otherwise the per-user ledger is used.

    Attributes:
        system_path: System-wide ledger file.
        user_path: Per-user fallback ledger file.
        default_expiration_days: Days until an acceptance must be re-evaluated.
    """

    system_path: ExpandedPath = SYSTEM_LEDGER_PATH
    user_path: ExpandedPath = USER_LEDGER_PATH
    default_expiration_days: int = Field(default=DEFAULT_EXPIRATION_DAYS, ge=1)


class ServiceConfig(_ClosedModel):
    """The monitored service that the kill switch acts on.

    Attributes:
        service_name: Unit name passed to systemctl.
        service_account: Run-as account whose events are relevant.
        process_pattern: Pattern for the pkill fallback.
        use_sudo: Prefix service manager commands with sudo.
        command_timeout_seconds: Timeout for each external command.
    """

    service_name: str = Field(default=DEFAULT_SERVICE_NAME, min_length=1)
    service_account: str = Field(default=DEFAULT_SERVICE_ACCOUNT, min_length=1)
    process_pattern: str = Field(default=DEFAULT_SERVICE_NAME, min_length=1)
    use_sudo: bool = True
    command_timeout_seconds: int = Field(default=COMMAND_TIMEOUT_SECONDS, ge=1, le=300)


class WatchConfig(_ClosedModel):
    """Security watcher and kill switch settings.

    Attributes:
        kill_on: Severity threshold for the kill switch. None disables it.
        max_kills_per_hour: Cap on autonomous stops per fixed one-hour window.
        restart_after_seconds: Restart the service this long after a kill.
        startup_cooldown_seconds: Kill switch is inert for this long after start.
        output_file: Optional event-log file (one JSON event per line).
        poll_interval_seconds: How often monitors observe the running flag.
        audit_log_path: auditd log tailed by the log-tail monitor.
        audit_key_prefix: Only audit lines tagged key="<prefix>..." are considered.
        audit_log_from_start: Catch up on existing audit log content at startup.
        config_dir: Directory tree watched for configuration changes.
        sessions_dir: Directory tree of session transcripts scanned for secrets.
        config_debounce_seconds: Per-path suppression window for config changes.
        transcript_settle_seconds: Delay after the last write before scanning.
    """

    kill_on: Literal["high", "critical"] | None = None
    max_kills_per_hour: int = Field(default=DEFAULT_MAX_KILLS_PER_HOUR, ge=0)
    restart_after_seconds: int | None = Field(default=None, ge=1)
    startup_cooldown_seconds: float = Field(default=DEFAULT_STARTUP_COOLDOWN_SECONDS, ge=0)
    output_file: ExpandedPath | None = None
    poll_interval_seconds: float = Field(default=MONITOR_POLL_INTERVAL_SECONDS, gt=0, le=1.0)

    audit_log_path: ExpandedPath = DEFAULT_AUDIT_LOG_PATH
    audit_key_prefix: str = Field(default=DEFAULT_AUDIT_KEY_PREFIX, min_length=1)
    audit_log_from_start: bool = True

    config_dir: ExpandedPath = DEFAULT_CONFIG_DIR
    sessions_dir: ExpandedPath = DEFAULT_SESSIONS_DIR
    config_debounce_seconds: float = Field(default=CONFIG_DEBOUNCE_SECONDS, ge=0)
    transcript_settle_seconds: float = Field(default=TRANSCRIPT_SETTLE_SECONDS, ge=0)


class IncidentConfig(_ClosedModel):
    """Incident correlation settings.

    Attributes:
        events_file: Event log read by `incident --last`.
        gateway_log_path: Gateway log listed as evidence when present.
        window_seconds: Trailing window that forms the last incident.
        max_transcripts: Maximum transcript files listed as evidence.
    """

    events_file: ExpandedPath = DEFAULT_EVENTS_FILE
    gateway_log_path: ExpandedPath = DEFAULT_GATEWAY_LOG_PATH
    window_seconds: float = Field(default=INCIDENT_WINDOW_SECONDS, gt=0)
    max_transcripts: int = Field(default=MAX_TRANSCRIPT_EVIDENCE, ge=0)


class AntennaConfig(_ClosedModel):
    """Top-level antenna configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    incident: IncidentConfig = Field(default_factory=IncidentConfig)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to JSON file.

        Creates parent directories if they don't exist and restricts both
        the directory and the file to the owner.

        Args:
            config_path: Path where the config JSON file should be saved.
        """
        config_path.parent.mkdir(parents=True, exist_ok=True)
        set_secure_permissions(config_path.parent, is_directory=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

        set_secure_permissions(config_path)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AntennaConfig":
        """Load configuration from JSON file.

        Args:
            config_path: Path to the config JSON file.

        Returns:
            AntennaConfig instance with loaded configuration.

        Raises:
            ConfigurationError: If the file is missing, is not valid JSON,
                or fails validation.
        """
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found at {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Could not read config file {config_path}: {e}") from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = []
            for error in e.errors():
                loc = ".".join(str(x) for x in error["loc"])
                errors.append(f"  - {loc}: {error['msg']}")
            raise ConfigurationError(
                f"Invalid configuration in {config_path}:\n" + "\n".join(errors)
            ) from e


def load_config(config_path: Path | None = None) -> AntennaConfig:
    """Load the configuration, falling back to defaults.

    An explicitly given path must exist. When no path is given, the platform
    default location is used if a file is present there, and built-in
    defaults otherwise.

    Args:
        config_path: Explicit config file, or None for the default location.

    Returns:
        Validated configuration.

    Raises:
        ConfigurationError: If the config file is invalid.
    """
    if config_path is not None:
        return AntennaConfig.load_from_file(config_path)
    if DEFAULT_CONFIG_PATH.exists():
        return AntennaConfig.load_from_file(DEFAULT_CONFIG_PATH)
    return AntennaConfig()
