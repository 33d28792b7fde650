"""
Filesystem helpers shared by detection and execution.

Detection needs executable checks and symlink resolution for candidate
compilers; the detection cache needs crash-safe writes; the orchestrator needs
build directories that are removed only when they lie under the temp dir.
"""

import os
import shutil
import stat
import tempfile
from pathlib import Path
from typing import Optional, Union

from compilerkit.core.exceptions import CompilerKitError

IS_WINDOWS = os.name == "nt"

PathLike = Union[str, Path]


class FilesystemError(CompilerKitError):
    """A filesystem operation could not be completed."""

    pass


# ============================================================================
# Candidate Paths
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """True if path equals parent or lies beneath it."""
    try:
        path.relative_to(parent)
    except ValueError:
        return False
    return True


def is_executable(path: PathLike) -> bool:
    """
    Check that path is a regular file the current user may execute.

    Never raises; unreadable or malformed paths count as not executable.
    """
    try:
        return os.path.isfile(path) and os.access(path, os.X_OK)
    except (OSError, ValueError):
        return False


def real_path(path: PathLike) -> str:
    """
    Canonical path with every symlink resolved.

    A dangling or unresolvable link yields the path unchanged.
    """
    try:
        return os.path.realpath(path, strict=True)
    except (OSError, ValueError):
        return str(path)


# ============================================================================
# Writes and Removal
# ============================================================================


def atomic_write(
    file_path: PathLike, content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Replace file_path with content in a single rename.

    Readers see either the previous file or the complete new one. On failure
    the previous file is left untouched and the temporary file is removed.

    Args:
        file_path: Destination (parent directories are created)
        content: Text (encoded with encoding) or bytes
        encoding: Encoding for text content
    """
    target = Path(file_path)
    target.parent.mkdir(parents=True, exist_ok=True)

    data = content.encode(encoding) if isinstance(content, str) else content
    fd, staging_name = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )
    staging = Path(staging_name)

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        staging.replace(target)
    except BaseException:
        try:
            staging.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def _make_writable(root: Path) -> None:
    """rmtree on Windows fails on read-only entries."""
    for current, dirs, files in os.walk(root):
        for name in dirs + files:
            try:
                os.chmod(os.path.join(current, name), stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
            except OSError:
                pass


def safe_rmtree(path: PathLike, require_prefix: Optional[PathLike] = None) -> None:
    """
    Remove a directory tree.

    Args:
        path: Directory to remove; a missing path is ignored
        require_prefix: When given, refuse to remove anything outside it

    Raises:
        ValueError: path lies outside require_prefix
        FilesystemError: path is not a directory, or removal failed

    Example:
        >>> safe_rmtree(build_dir, require_prefix=tempfile.gettempdir())
    """
    target = Path(path).resolve()

    if require_prefix is not None:
        boundary = Path(require_prefix).resolve()
        if not is_relative_to(target, boundary):
            raise ValueError(f"Refusing to delete '{target}': outside '{boundary}'")

    if not target.exists():
        return
    if not target.is_dir():
        raise FilesystemError(f"Not a directory: {target}")

    try:
        if IS_WINDOWS:
            _make_writable(target)
        shutil.rmtree(target)
    except OSError as e:
        raise FilesystemError(f"Could not remove '{target}': {e}") from e


__all__ = [
    "FilesystemError",
    "is_relative_to",
    "is_executable",
    "real_path",
    "atomic_write",
    "safe_rmtree",
]
