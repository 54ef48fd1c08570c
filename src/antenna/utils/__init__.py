"""Shared utilities for antenna.

Import directly from submodules:
    from antenna.utils.file_helpers import set_secure_permissions
"""

__all__: list[str] = []  # Direct submodule imports required (see docstring)
