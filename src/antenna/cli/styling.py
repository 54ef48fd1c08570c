"""CLI output styling utilities.

Provides consistent styling helpers for CLI output:
- Cyan bold for section headers and labels
- Green for success messages (with checkmark)
- Red for error messages (with cross)
- Yellow for warnings
- Dim for neutral/empty state messages
"""

from __future__ import annotations

__all__ = [
    "style_dim",
    "style_error",
    "style_header",
    "style_label",
    "style_severity",
    "style_success",
    "style_warning",
]

import click

_SEVERITY_COLORS = {
    "critical": "red",
    "high": "red",
    "warning": "yellow",
    "medium": "yellow",
    "info": "cyan",
    "low": "cyan",
}


def style_header(title: str) -> str:
    """Style a section header with dashes.

    Example:
        >>> click.echo(style_header("Timeline"))
        --- Timeline ---
    """
    return click.style(f"--- {title} ---", fg="cyan", bold=True)


def style_label(label: str) -> str:
    """Style a label for list/summary headers.

    Example:
        >>> click.echo(style_label("Active") + f" {count}")
        Active: 3
    """
    return click.style(f"{label}:", fg="cyan", bold=True)


def style_success(message: str) -> str:
    return click.style(f"✓ {message}", fg="green")


def style_error(message: str) -> str:
    return click.style(f"✗ {message}", fg="red")


def style_dim(message: str) -> str:
    return click.style(message, dim=True)


def style_warning(message: str) -> str:
    """Style a warning message with yellow color.

    Example:
        >>> click.echo(style_warning("Using per-user ledger"))
        Warning: Using per-user ledger
    """
    return click.style(f"Warning: {message}", fg="yellow", bold=True)


def style_severity(severity: str) -> str:
    """Upper-case severity label, colored by level."""
    color = _SEVERITY_COLORS.get(severity.lower())
    return click.style(severity.upper(), fg=color, bold=severity.lower() == "critical")
