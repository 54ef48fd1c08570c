"""Shared file utilities for antenna.

Provides common utilities used by the acceptance ledger and the event log:
- set_secure_permissions: Owner-only file/directory permissions
- file_lock: Exclusive advisory lock held across read-then-append
- read_complete_line_bytes: Raw newline-terminated records, byte for byte
- read_complete_lines: Decoded, non-blank newline-terminated records
"""

from __future__ import annotations

__all__ = [
    "file_lock",
    "read_complete_line_bytes",
    "read_complete_lines",
    "set_secure_permissions",
]

import fcntl
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

from antenna.constants import DIR_PERMISSIONS, FILE_PERMISSIONS


def set_secure_permissions(path: Path, *, is_directory: bool = False) -> None:
    """Set secure permissions on file or directory.

    Sets permissions to restrict access to owner only:
    - Directory: 0o700 (rwx------)
    - File: 0o600 (rw-------)

    Does nothing on Windows. Silently ignores permission errors
    (some systems don't allow permission changes).

    Args:
        path: Path to file or directory.
        is_directory: If True, use directory permissions (0o700).
    """
    if sys.platform == "win32":
        return

    try:
        mode = DIR_PERMISSIONS if is_directory else FILE_PERMISSIONS
        path.chmod(mode)
    except OSError:
        pass  # Permission changes might fail on some systems


@contextmanager
def file_lock(handle: IO[bytes]) -> Iterator[None]:
    """Context manager for exclusive advisory locking of an open file.

    Args:
        handle: File object opened by the caller.

    Yields:
        None when lock is acquired.

    Raises:
        OSError: If lock acquisition fails.
    """
    fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
    try:
        yield
    finally:
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        except OSError:
            pass


def read_complete_line_bytes(path: Path) -> list[bytes]:
    """Read all complete (newline-terminated) lines of a file as raw bytes.

    A trailing fragment without a newline is a record still being written by
    another process and is ignored. Nothing else is dropped or decoded, so
    blank lines and invalid UTF-8 reach the caller unchanged.

    Raises:
        OSError: If the file cannot be read.
    """
    data = path.read_bytes()

    # Everything after the last newline is an incomplete record
    end = data.rfind(b"\n")
    if end == -1:
        return []
    return data[:end].split(b"\n")


def read_complete_lines(path: Path) -> list[str]:
    """Read all complete (newline-terminated) lines of a file.

    Blank lines are dropped and undecodable bytes are replaced.

    Args:
        path: File to read.

    Returns:
        Lines without their terminating newline, in file order.

    Raises:
        OSError: If the file cannot be read.
    """
    lines = (raw.decode("utf-8", errors="replace") for raw in read_complete_line_bytes(path))
    return [line for line in lines if line.strip()]
