"""YAML configuration parser for CompilerKit.

This module provides parsing and validation for compilerkit.yaml configuration files.
Every section and key is optional; missing values take the dataclass defaults.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

import yaml

from compilerkit.core.exceptions import ConfigError

CONFIG_FILE_NAME = "compilerkit.yaml"


@dataclass
class DetectionConfig:
    """Compiler detection settings."""

    deep_scan: bool = False
    max_workers: int = 1
    deep_scan_max_depth: int = 6
    use_cache: bool = True
    cache_file: Optional[str] = None  # None: ~/.compilerkit/compilers.json


@dataclass
class CompileConfig:
    """Compile step settings."""

    cpp_standard: str = "c++17"
    c_standard: str = "c11"
    optimization: str = "O2"
    timeout_ms: int = 30000  # Fixed compile-step timeout
    extra_flags: List[str] = field(default_factory=list)


@dataclass
class ExecutionConfig:
    """Run step budget."""

    timeout_ms: int = 2000
    memory_limit_mb: int = 256

    @property
    def memory_limit_bytes(self) -> int:
        return self.memory_limit_mb * 1024 * 1024


@dataclass
class CompilerKitConfig:
    """Complete CompilerKit configuration."""

    detection: DetectionConfig = field(default_factory=DetectionConfig)
    compile: CompileConfig = field(default_factory=CompileConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)


def parse_config(config_path: Path) -> CompilerKitConfig:
    """
    Parse compilerkit.yaml configuration file.

    Args:
        config_path: Path to compilerkit.yaml

    Returns:
        Parsed and validated configuration

    Raises:
        ConfigError: If configuration is invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    # An empty file means all defaults
    if data is None:
        return CompilerKitConfig()

    return parse_config_data(data)


def load_config(config_path: Optional[Path] = None) -> CompilerKitConfig:
    """
    Load configuration, falling back to defaults.

    Args:
        config_path: Explicit configuration file. If None, compilerkit.yaml
            in the current directory is used when present.

    Raises:
        ConfigError: If an explicit or discovered file is invalid
    """
    if config_path is not None:
        return parse_config(Path(config_path))

    default_path = Path.cwd() / CONFIG_FILE_NAME
    if default_path.exists():
        return parse_config(default_path)

    return CompilerKitConfig()


def parse_config_data(data: Any) -> CompilerKitConfig:
    """Parse and validate configuration data."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    return CompilerKitConfig(
        detection=_parse_detection_config(_section(data, "detection")),
        compile=_parse_compile_config(_section(data, "compile")),
        execution=_parse_execution_config(_section(data, "execution")),
    )


def _section(data: dict, name: str) -> dict:
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section


def _get(section: dict, section_name: str, key: str, expected: type, default: Any):
    """Read one key, checking its type."""
    if key not in section or section[key] is None:
        return default

    value = section[key]
    # bool is an int subclass; never accept it for numeric settings
    if expected is int and isinstance(value, bool):
        raise ConfigError(f"{section_name}.{key} must be an integer, got {value!r}")
    if not isinstance(value, expected):
        raise ConfigError(
            f"{section_name}.{key} must be of type {expected.__name__}, got {value!r}"
        )
    return value


def _positive(section_name: str, key: str, value: int) -> int:
    if value <= 0:
        raise ConfigError(f"{section_name}.{key} must be positive, got {value}")
    return value


def _parse_detection_config(data: dict) -> DetectionConfig:
    defaults = DetectionConfig()
    return DetectionConfig(
        deep_scan=_get(data, "detection", "deep_scan", bool, defaults.deep_scan),
        max_workers=_positive(
            "detection",
            "max_workers",
            _get(data, "detection", "max_workers", int, defaults.max_workers),
        ),
        deep_scan_max_depth=_positive(
            "detection",
            "deep_scan_max_depth",
            _get(
                data, "detection", "deep_scan_max_depth", int, defaults.deep_scan_max_depth
            ),
        ),
        use_cache=_get(data, "detection", "use_cache", bool, defaults.use_cache),
        cache_file=_get(data, "detection", "cache_file", str, defaults.cache_file),
    )


def _parse_compile_config(data: dict) -> CompileConfig:
    defaults = CompileConfig()

    extra_flags = _get(data, "compile", "extra_flags", list, [])
    if not all(isinstance(flag, str) for flag in extra_flags):
        raise ConfigError("compile.extra_flags must be a list of strings")

    return CompileConfig(
        cpp_standard=_get(data, "compile", "cpp_standard", str, defaults.cpp_standard),
        c_standard=_get(data, "compile", "c_standard", str, defaults.c_standard),
        optimization=_get(data, "compile", "optimization", str, defaults.optimization),
        timeout_ms=_positive(
            "compile",
            "timeout_ms",
            _get(data, "compile", "timeout_ms", int, defaults.timeout_ms),
        ),
        extra_flags=list(extra_flags),
    )


def _parse_execution_config(data: dict) -> ExecutionConfig:
    defaults = ExecutionConfig()
    timeout_ms = _get(data, "execution", "timeout_ms", int, defaults.timeout_ms)
    if timeout_ms < 0:
        raise ConfigError(f"execution.timeout_ms must not be negative, got {timeout_ms}")

    return ExecutionConfig(
        timeout_ms=timeout_ms,
        memory_limit_mb=_positive(
            "execution",
            "memory_limit_mb",
            _get(data, "execution", "memory_limit_mb", int, defaults.memory_limit_mb),
        ),
    )
