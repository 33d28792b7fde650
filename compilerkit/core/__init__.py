"""
Core utilities for CompilerKit: platform detection, filesystem helpers,
directory layout and the exception hierarchy.
"""

from compilerkit.core.exceptions import (
    CacheError,
    CacheLockTimeout,
    CompilationError,
    CompilerKitError,
    ConfigError,
    DetectionError,
    ExecutionError,
)
from compilerkit.core.filesystem import (
    FilesystemError,
    atomic_write,
    is_executable,
    real_path,
    safe_rmtree,
)
from compilerkit.core.platform import PlatformInfo, detect_platform

__all__ = [
    "CompilerKitError",
    "DetectionError",
    "ExecutionError",
    "CompilationError",
    "CacheError",
    "CacheLockTimeout",
    "ConfigError",
    "FilesystemError",
    "atomic_write",
    "is_executable",
    "real_path",
    "safe_rmtree",
    "PlatformInfo",
    "detect_platform",
]
