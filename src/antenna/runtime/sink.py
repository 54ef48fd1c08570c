"""Single event sink shared by all monitors.

For every event, in order:
1. Write a severity-prefixed line to the operator stream
2. Append the event to the output file, if configured (best-effort)
3. Evaluate the kill switch and act on its decision

The watcher feeds the sink from one queue consumer, so events are handled one
at a time in arrival order.
"""

from __future__ import annotations

__all__ = ["EventSink", "format_event_line"]

import asyncio
import sys
from pathlib import Path
from typing import TextIO

import click

from antenna.events.event_log import append_event
from antenna.events.models import EventSeverity, WatchEvent
from antenna.runtime.kill_switch import KillDecision, KillOutcome, KillSwitch
from antenna.runtime.service_control import ActionResult, ServiceController
from antenna.telemetry.system_logger import get_system_logger

_SEVERITY_STYLES: dict[EventSeverity, tuple[str, dict[str, object]]] = {
    EventSeverity.CRITICAL: ("CRITICAL", {"fg": "red", "bold": True}),
    EventSeverity.HIGH: ("HIGH", {"fg": "red"}),
    EventSeverity.WARNING: ("WARNING", {"fg": "yellow"}),
    EventSeverity.INFO: ("INFO", {"fg": "cyan"}),
}


def format_event_line(event: WatchEvent) -> str:
    """Operator-facing line: time, styled severity prefix, source and message."""
    label, style = _SEVERITY_STYLES[event.severity]
    prefix = click.style(f"{label:<8}", **style)  # type: ignore[arg-type]
    clock = event.timestamp.astimezone().strftime("%H:%M:%S")
    return f"{clock} {prefix} [{event.source.value}] {event.message}"


class EventSink:
    """Prints, persists and acts on watch events."""

    def __init__(
        self,
        kill_switch: KillSwitch,
        controller: ServiceController,
        *,
        output_file: Path | None = None,
        stream: TextIO | None = None,
    ) -> None:
        """Initialize sink.

        Args:
            kill_switch: Decides whether an event stops the service.
            controller: Stops and restarts the monitored service.
            output_file: Optional event-log file (one JSON event per line).
            stream: Operator stream. Defaults to stdout.
        """
        self._kill_switch = kill_switch
        self._controller = controller
        self._output_file = output_file
        self._stream = stream
        self._restarts: set[asyncio.Task[None]] = set()

    def _echo(self, message: str = "") -> None:
        click.echo(message, file=self._stream or sys.stdout)

    @property
    def kill_switch(self) -> KillSwitch:
        return self._kill_switch

    @property
    def pending_restarts(self) -> int:
        return sum(1 for task in self._restarts if not task.done())

    def announce_start(self, monitor_names: list[str]) -> None:
        """Print the watcher startup summary."""
        settings = self._kill_switch.settings
        self._echo(click.style("antenna watcher started", fg="cyan", bold=True))
        self._echo(f"  Monitors: {', '.join(monitor_names) or 'none'}")
        if settings.threshold is None:
            self._echo("  Kill switch: off")
        else:
            self._echo(f"  Kill switch: on {settings.threshold.value} and above")
            self._echo(f"  Max kills per hour: {settings.max_kills_per_hour}")
            self._echo(f"  Startup cooldown: {settings.startup_cooldown_seconds:g}s")
            if settings.restart_after_seconds is not None:
                self._echo(f"  Auto-restart after: {settings.restart_after_seconds}s")
        if self._output_file is not None:
            self._echo(f"  Event log: {self._output_file}")

    async def handle(self, event: WatchEvent) -> KillDecision:
        """Process one event. Never raises for output or action failures."""
        self._echo(format_event_line(event))
        self._persist(event)

        decision = self._kill_switch.evaluate(event)
        if decision.outcome is KillOutcome.RATE_LIMITED:
            self._echo(click.style("Kill rate limit reached, not killing", fg="yellow", bold=True))
            get_system_logger().warning(
                {
                    "event": "kill_rate_limited",
                    "message": (
                        f"Kill suppressed: {decision.kills_in_window}/{decision.max_kills} "
                        "kills already in this hour"
                    ),
                    "trigger": event.message,
                }
            )
        elif decision.should_kill:
            await self._kill(event)
        return decision

    def _persist(self, event: WatchEvent) -> None:
        if self._output_file is None:
            return
        try:
            append_event(self._output_file, event)
        except OSError as e:
            get_system_logger().warning(
                {
                    "event": "event_log_write_failed",
                    "message": f"Could not write event to {self._output_file}: {e}",
                    "path": str(self._output_file),
                }
            )

    async def _kill(self, event: WatchEvent) -> None:
        service = self._controller.service_name
        self._echo()
        self._echo(click.style("!" * 60, fg="red", bold=True))
        self._echo(click.style("  EMERGENCY SHUTDOWN", fg="red", bold=True))
        self._echo(click.style("!" * 60, fg="red", bold=True))
        self._echo(f"  Trigger: {event.message}")
        self._echo(f"  Stopping service: {service}")

        result = await asyncio.to_thread(self._controller.stop_service)
        self._report("stop", result)

        self._echo()
        self._echo(click.style("ACTION REQUIRED:", fg="yellow", bold=True))
        self._echo("  1. Review the incident: antenna incident --last")
        self._echo("  2. Investigate the session transcript")
        self._echo(f"  3. Restart manually when safe: systemctl start {service}")
        self._echo()

        delay = self._kill_switch.settings.restart_after_seconds
        if delay is not None:
            self._echo(f"  Auto-restart scheduled in {delay}s")
            task = asyncio.create_task(self._restart_later(delay), name="antenna_restart")
            self._restarts.add(task)
            task.add_done_callback(self._restarts.discard)

    async def _restart_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        result = await asyncio.to_thread(self._controller.start_service)
        self._report("restart", result)

    def _report(self, action: str, result: ActionResult) -> None:
        if result.success:
            self._echo(click.style(f"✓ Service {action} succeeded ({result.command})", fg="green"))
            return
        self._echo(click.style(f"✗ Service {action} failed: {result.detail}", fg="red"))
        get_system_logger().error(
            {
                "event": f"service_{action}_failed",
                "message": f"Service {action} failed: {result.detail}",
                "command": result.command,
            }
        )

    async def cancel_pending_restarts(self) -> int:
        """Cancel scheduled restarts. Returns how many were still pending."""
        pending = [task for task in self._restarts if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            self._echo(
                click.style(f"Cancelled {len(pending)} pending service restart(s)", fg="yellow")
            )
        return len(pending)
