"""Collaborators for the monitored service.

Stop/start go through the host service manager (systemctl), with a
process-match fallback (pkill -f) when a graceful stop fails. Every action
returns an ActionResult; none of them raise. A failed action is reported by
the caller and never crashes the watcher.

Account resolution maps the service's run-as account to its numeric uid, used
only to filter audit events. An unknown account disables that filtering.
"""

from __future__ import annotations

__all__ = [
    "ActionResult",
    "ServiceController",
]

import pwd
import subprocess
from dataclasses import dataclass

from antenna.config import ServiceConfig
from antenna.telemetry.system_logger import get_system_logger


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of a service action.

    Attributes:
        success: True if the command reported success.
        command: The command line that produced this outcome.
        detail: Error description or command output on failure.
    """

    success: bool
    command: str
    detail: str | None = None


class ServiceController:
    """Stop, start and identify the monitored service."""

    def __init__(self, config: ServiceConfig) -> None:
        self._config = config

    @property
    def service_name(self) -> str:
        return self._config.service_name

    def _privileged(self, argv: list[str]) -> list[str]:
        if self._config.use_sudo:
            return ["sudo", "-n", *argv]
        return argv

    def _run(self, argv: list[str]) -> ActionResult:
        command = " ".join(argv)
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self._config.command_timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            return ActionResult(False, command, f"timed out after {self._config.command_timeout_seconds}s")
        except FileNotFoundError:
            return ActionResult(False, command, f"{argv[0]} not found")
        except Exception as e:
            return ActionResult(False, command, f"{type(e).__name__}: {e}")

        if result.returncode != 0:
            output = (result.stderr or result.stdout).strip()
            return ActionResult(False, command, output or f"exit code {result.returncode}")
        return ActionResult(True, command)

    def stop_service(self) -> ActionResult:
        """Stop the service gracefully, falling back to pkill.

        Returns:
            Result of the graceful stop if it succeeded, otherwise of the fallback.
        """
        graceful = self._run(self._privileged(["systemctl", "stop", self._config.service_name]))
        if graceful.success:
            return graceful

        get_system_logger().warning(
            {
                "event": "service_stop_fallback",
                "message": f"systemctl stop failed ({graceful.detail}), trying pkill",
                "command": graceful.command,
            }
        )
        return self._run(self._privileged(["pkill", "-f", self._config.process_pattern]))

    def start_service(self) -> ActionResult:
        """Start the service via the service manager."""
        return self._run(self._privileged(["systemctl", "start", self._config.service_name]))

    def resolve_uid(self) -> int | None:
        """Numeric uid of the service account, or None if unknown."""
        try:
            return pwd.getpwnam(self._config.service_account).pw_uid
        except KeyError:
            return None
