"""Security watcher: runs the monitors and feeds the event sink.

Lifecycle:
    STOPPED -> STARTING -> RUNNING -> STOPPING -> STOPPED

- STARTING resolves the monitored service account (best-effort)
- RUNNING runs every monitor as its own task until the running flag drops
- STOPPING waits for every monitor to return, drains queued events and
  cancels pending restarts

`start()` does not return until the watcher is STOPPED again. `stop()` may be
called at any time, any number of times; once it returns no monitor is
running. A watcher instance serves a single run.

Concurrency:
    Monitors never talk to each other. Their events go through one
    asyncio.Queue with a single consumer, so the sink (and the kill decision
    inside it) sees one event at a time, in arrival order.
"""

from __future__ import annotations

__all__ = [
    "SecurityWatcher",
    "WatcherState",
]

import asyncio
import threading
import traceback
from enum import Enum
from typing import Sequence, TextIO

from antenna.acceptance.ledger import resolve_ledger_path
from antenna.config import AntennaConfig
from antenna.events.models import WatchEvent
from antenna.exceptions import SourceUnavailableError
from antenna.runtime.kill_switch import KillSwitch, KillSwitchSettings
from antenna.runtime.monitors import (
    AuditLogMonitor,
    ConfigDirMonitor,
    Monitor,
    MonitorContext,
    TranscriptMonitor,
)
from antenna.runtime.service_control import ServiceController
from antenna.runtime.sink import EventSink
from antenna.telemetry.system_logger import get_system_logger


class WatcherState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class SecurityWatcher:
    """Runs monitors concurrently and routes their events to one sink.

    Example:
        watcher = SecurityWatcher.from_config(config)
        loop.add_signal_handler(signal.SIGINT, watcher.request_stop)
        await watcher.start()
    """

    def __init__(
        self,
        monitors: Sequence[Monitor],
        sink: EventSink,
        kill_switch: KillSwitch,
        controller: ServiceController,
    ) -> None:
        self._monitors = list(monitors)
        self._sink = sink
        self._kill_switch = kill_switch
        self._controller = controller

        self._state = WatcherState.STOPPED
        self._running = False
        self._stop_requested = False
        self._started = False
        self._stopped = asyncio.Event()
        self._queue: asyncio.Queue[WatchEvent | None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread: int | None = None
        self.service_uid: int | None = None

    @classmethod
    def from_config(cls, config: AntennaConfig, *, stream: TextIO | None = None) -> "SecurityWatcher":
        """Build a watcher with the standard monitors from configuration."""
        watch = config.watch
        own_files = [
            path
            for path in (
                watch.output_file,
                resolve_ledger_path(config.ledger),
                config.logging.system_log_path,
            )
            if path is not None
        ]
        controller = ServiceController(config.service)
        kill_switch = KillSwitch(KillSwitchSettings.from_config(watch))
        sink = EventSink(kill_switch, controller, output_file=watch.output_file, stream=stream)
        monitors: list[Monitor] = [
            AuditLogMonitor(
                watch.audit_log_path,
                key_prefix=watch.audit_key_prefix,
                from_start=watch.audit_log_from_start,
                poll_interval=watch.poll_interval_seconds,
            ),
            ConfigDirMonitor(
                watch.config_dir,
                debounce_seconds=watch.config_debounce_seconds,
                poll_interval=watch.poll_interval_seconds,
                ignore_paths=own_files,
            ),
            TranscriptMonitor(
                watch.sessions_dir,
                settle_seconds=watch.transcript_settle_seconds,
                poll_interval=watch.poll_interval_seconds,
            ),
        ]
        return cls(monitors, sink, kill_switch, controller)

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def monitors(self) -> list[Monitor]:
        return list(self._monitors)

    def is_running(self) -> bool:
        """The shared running flag observed by every monitor."""
        return self._running

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Run the watcher until stopped.

        Calling start() on an instance that has already been started logs a
        warning and returns.
        """
        logger = get_system_logger()
        if self._started:
            logger.warning(
                {"event": "watcher_already_started", "message": "Watcher was already started"}
            )
            return
        self._started = True

        if self._stop_requested:
            self._stopped.set()
            return

        self._state = WatcherState.STARTING
        self._running = True
        self._loop = asyncio.get_running_loop()
        self._loop_thread = threading.get_ident()

        try:
            self.service_uid = await asyncio.to_thread(self._controller.resolve_uid)
            if self.service_uid is None:
                logger.info(
                    {
                        "event": "service_account_unresolved",
                        "message": "Service account not found, audit events are not filtered by account",
                    }
                )

            if not self._running:
                return

            self._kill_switch.mark_started()
            self._state = WatcherState.RUNNING
            self._sink.announce_start([m.name for m in self._monitors])
            await self._run_monitors()
        finally:
            self._running = False
            self._state = WatcherState.STOPPED
            self._stopped.set()

    async def _run_monitors(self) -> None:
        queue: asyncio.Queue[WatchEvent | None] = asyncio.Queue()
        self._queue = queue
        consumer = asyncio.create_task(self._consume(queue), name="antenna_event_sink")
        context = MonitorContext(
            is_running=self.is_running,
            emit=self._emit,
            service_uid=self.service_uid,
        )

        try:
            await asyncio.gather(*(self._supervise(monitor, context) for monitor in self._monitors))
        finally:
            self._state = WatcherState.STOPPING
            self._running = False
            # Events already queued are still delivered
            queue.put_nowait(None)
            await consumer
            await self._sink.cancel_pending_restarts()

    def request_stop(self) -> None:
        """Flip the running flag. Safe from signal handlers and other threads."""
        self._stop_requested = True
        self._running = False

    async def stop(self) -> None:
        """Stop the watcher and wait until every monitor has returned.

        Idempotent. Safe to call before or during start().
        """
        self.request_stop()
        if self._started and not self._stopped.is_set():
            await self._stopped.wait()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _emit(self, event: WatchEvent) -> None:
        queue, loop = self._queue, self._loop
        if queue is None or loop is None:
            return
        if threading.get_ident() == self._loop_thread:
            queue.put_nowait(event)
        else:
            loop.call_soon_threadsafe(queue.put_nowait, event)

    async def _consume(self, queue: asyncio.Queue[WatchEvent | None]) -> None:
        while True:
            event = await queue.get()
            if event is None:
                return
            try:
                await self._sink.handle(event)
            except Exception as e:
                get_system_logger().error(
                    {
                        "event": "event_sink_failed",
                        "message": f"Failed to process event: {e}",
                        "error": str(e),
                        "traceback": traceback.format_exc(),
                    }
                )

    async def _supervise(self, monitor: Monitor, context: MonitorContext) -> None:
        """Run one monitor. Its failure never affects the others.

        A monitor that fails is degraded to a no-op: it idles until the
        running flag drops and the watcher keeps running on the rest.
        """
        logger = get_system_logger()
        try:
            await monitor.run(context)
        except SourceUnavailableError as e:
            logger.info(
                {
                    "event": "monitor_source_unavailable",
                    "message": f"{e}, skipping",
                    "monitor": monitor.name,
                    "path": str(e.path),
                }
            )
        except Exception as e:
            logger.error(
                {
                    "event": "monitor_crashed",
                    "message": f"Monitor {monitor.name} stopped: {e}",
                    "monitor": monitor.name,
                    "error": str(e),
                    "traceback": traceback.format_exc(),
                }
            )

        while context.is_running():
            await asyncio.sleep(monitor.poll_interval)
