"""Command-line interface for antenna.

Provides commands for accepting risks, inspecting the acceptance ledger,
running the security watcher and reporting the last incident.
"""

from .main import cli, main

__all__ = ["cli", "main"]
