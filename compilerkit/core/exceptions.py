"""
Centralized exception hierarchy for CompilerKit.

This module defines all custom exceptions used across the codebase
to provide clear exception semantics.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class CompilerKitError(Exception):
    """Base exception for all CompilerKit errors."""

    pass


# ============================================================================
# Detection Exceptions
# ============================================================================


class DetectionError(CompilerKitError):
    """Raised when compiler detection cannot complete."""

    pass


# ============================================================================
# Execution Exceptions
# ============================================================================


class ExecutionError(CompilerKitError):
    """Base exception for process execution errors."""

    pass


class CompilationError(ExecutionError):
    """Raised when a compile request is malformed."""

    pass


# ============================================================================
# Cache Exceptions
# ============================================================================


class CacheError(CompilerKitError):
    """Base exception for detection cache errors."""

    pass


class CacheLockTimeout(CacheError):
    """Raised when the cache lock cannot be acquired within timeout."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(CompilerKitError):
    """Configuration parsing or validation error."""

    pass
