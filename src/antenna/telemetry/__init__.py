"""Operational logging for antenna.

Structure:
    system_logger   Singleton system logger (stderr + optional system.jsonl)
"""

from antenna.telemetry.system_logger import (
    ConsoleFormatter,
    configure_system_logger_file,
    get_system_logger,
    setup_logging,
)

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
    "setup_logging",
]
