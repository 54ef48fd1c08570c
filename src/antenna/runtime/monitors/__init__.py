"""Watcher inputs: audit log tail, config directory, session transcripts."""

from __future__ import annotations

__all__ = [
    "AuditLogMonitor",
    "ConfigDirMonitor",
    "Monitor",
    "MonitorContext",
    "TranscriptMonitor",
]

from antenna.runtime.monitors.audit_log import AuditLogMonitor
from antenna.runtime.monitors.base import Monitor, MonitorContext
from antenna.runtime.monitors.config_dir import ConfigDirMonitor
from antenna.runtime.monitors.transcripts import TranscriptMonitor
