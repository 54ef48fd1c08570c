"""Watch command for antenna CLI.

Runs the security watcher in the foreground until SIGINT/SIGTERM.
"""

from __future__ import annotations

__all__ = ["watch"]

import asyncio
import signal
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from antenna.config import WatchConfig
from antenna.runtime.watcher import SecurityWatcher

from ..helpers import get_config
from ..styling import style_dim


async def _run(watcher: SecurityWatcher) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, watcher.request_stop)
    try:
        await watcher.start()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


def build_watch_config(base: WatchConfig, overrides: dict[str, Any]) -> WatchConfig:
    """Apply CLI overrides (None means "keep the configured value")."""
    updates = {k: v for k, v in overrides.items() if v is not None}
    if updates.get("kill_on") == "off":
        updates["kill_on"] = None
    return WatchConfig.model_validate({**base.model_dump(), **updates})


@click.command()
@click.option(
    "--kill-on",
    type=click.Choice(["high", "critical", "off"]),
    help="Stop the service on events at or above this severity (default: off)",
)
@click.option("--max-kills-per-hour", type=click.IntRange(min=0), help="Cap on kills per hour (default: 3)")
@click.option("--restart-after", type=click.IntRange(min=1), help="Restart the service N seconds after a kill")
@click.option(
    "--startup-cooldown",
    type=click.FloatRange(min=0),
    help="Seconds after start during which the kill switch is inert (default: 60)",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Append events to FILE")
@click.pass_context
def watch(
    ctx: click.Context,
    kill_on: str | None,
    max_kills_per_hour: int | None,
    restart_after: int | None,
    startup_cooldown: float | None,
    output: Path | None,
) -> None:
    """Watch audit logs, config changes and transcripts.

    Examples:
        antenna watch
        antenna watch --kill-on critical --restart-after 300 -o ~/.openclaw/antenna-events.jsonl
    """
    config = get_config(ctx)
    try:
        watch_config = build_watch_config(
            config.watch,
            {
                "kill_on": kill_on,
                "max_kills_per_hour": max_kills_per_hour,
                "restart_after_seconds": restart_after,
                "startup_cooldown_seconds": startup_cooldown,
                "output_file": output,
            },
        )
    except ValidationError as e:
        raise click.BadParameter(str(e)) from e

    run_config = config.model_copy(update={"watch": watch_config})
    watcher = SecurityWatcher.from_config(run_config)
    asyncio.run(_run(watcher))
    click.echo(style_dim("Watcher stopped."))
