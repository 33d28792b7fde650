"""
Configuration loading for CompilerKit (compilerkit.yaml).
"""

from compilerkit.config.parser import (
    CONFIG_FILE_NAME,
    CompileConfig,
    CompilerKitConfig,
    DetectionConfig,
    ExecutionConfig,
    load_config,
    parse_config,
    parse_config_data,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "CompileConfig",
    "CompilerKitConfig",
    "DetectionConfig",
    "ExecutionConfig",
    "load_config",
    "parse_config",
    "parse_config_data",
]
