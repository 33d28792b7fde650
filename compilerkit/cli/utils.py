"""
Shared utilities for CLI commands.

Provides common functionality used across multiple CLI commands to
eliminate duplication and ensure consistent behavior.
"""

import logging
from typing import Optional

from compilerkit.config.parser import CompilerKitConfig, load_config
from compilerkit.detection.cache import DetectionCache
from compilerkit.detection.models import CompilerInfo, DetectionResult

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Management
# ============================================================================


def load_config_from_args(args) -> CompilerKitConfig:
    """
    Load configuration named by --config, or ./compilerkit.yaml if present.

    Args:
        args: Parsed arguments (uses args.config when set)

    Raises:
        ConfigError: If the configuration file is invalid
    """
    config_path = getattr(args, "config", None)
    config = load_config(config_path)
    logger.debug(f"Loaded configuration: {config}")
    return config


def get_detection_cache(config: CompilerKitConfig) -> DetectionCache:
    """Detection cache at the configured (or default) location."""
    return DetectionCache(config.detection.cache_file)


# ============================================================================
# Output
# ============================================================================


def safe_print(message: str, file=None):
    """
    Print message with safe encoding handling for Windows console.

    Falls back to ASCII-safe characters if Unicode symbols can't be encoded.

    Args:
        message: Message to print
        file: Output file (default: stdout)
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        safe_message = (
            message.replace("⚠️", "WARNING:")
            .replace("✓", "[OK]")
            .replace("★", "*")
            .replace("❌", "[ERROR]")
        )
        print(safe_message, file=file)


def format_compiler(compiler: CompilerInfo, recommended: Optional[CompilerInfo] = None) -> str:
    """One-line description of a compiler; the recommended one is starred."""
    marker = "★" if recommended is not None and compiler.path == recommended.path else " "
    bits = "64-bit" if compiler.is_64bit else "32-bit"
    return (
        f"{marker} {compiler.name:<20} {compiler.type:<12} {bits:<7} "
        f"priority {compiler.priority:<4} {compiler.path}"
    )


def print_detection_result(result: DetectionResult) -> None:
    """Human-readable report of a detection result."""
    if not result.success:
        safe_print(f"❌ Compiler detection failed: {result.error}")
    elif not result.compilers:
        safe_print("⚠️  No C/C++ compilers found")
    else:
        safe_print(f"✓ Found {len(result.compilers)} compiler(s):")
        for compiler in result.compilers:
            safe_print(format_compiler(compiler, result.recommended))
        if result.recommended is not None:
            safe_print(f"\nRecommended: {result.recommended.name} ({result.recommended.path})")

    if result.suggestions:
        safe_print("\nSuggestions:")
        for suggestion in result.suggestions:
            safe_print(f"  - {suggestion}")
