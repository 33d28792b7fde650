"""
Location of CompilerKit's per-user state.

    ~/.compilerkit/                 (%USERPROFILE%\\.compilerkit\\ on Windows)
        compilers.json              cached detection result
        lock/compilers.json.lock    cache lock
"""

import os
from pathlib import Path

from compilerkit.core.exceptions import CompilerKitError


class DirectoryError(CompilerKitError):
    """The per-user directory cannot be located."""

    pass


def get_global_cache_dir() -> Path:
    """
    Per-user CompilerKit directory.

    Raises:
        DirectoryError: On Windows when USERPROFILE is unset
    """
    if os.name != "nt":
        return Path.home() / ".compilerkit"

    profile = os.environ.get("USERPROFILE")
    if not profile:
        raise DirectoryError("Cannot locate the CompilerKit directory: USERPROFILE is not set")
    return Path(profile) / ".compilerkit"


def get_default_cache_file() -> Path:
    """Default location of the detection cache file."""
    return get_global_cache_dir() / "compilers.json"
