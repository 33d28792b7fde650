"""
compilerkit/detection/prober.py

Compiler probing - turns a candidate path into a CompilerInfo.

A probe runs the candidate with --version and -dumpmachine, classifies the
compiler family, parses its version, derives the language standards it
supports and scores it, then offers it to the detection run's DedupRegistry.
"""

import logging
import re
from typing import List, Optional

from compilerkit.core.filesystem import is_executable, real_path
from compilerkit.detection.models import CompilerCapabilities, CompilerInfo
from compilerkit.detection.priority import calculate_priority, major_version
from compilerkit.detection.registry import DedupRegistry
from compilerkit.execution.runner import DEFAULT_COMMAND_TIMEOUT_MS, ProcessRunner

logger = logging.getLogger(__name__)

# Tried in order, first match wins
VERSION_PATTERNS = [
    re.compile(r"(\d+\.\d+\.\d+)"),
    re.compile(r"version (\d+\.\d+\.\d+)"),
    re.compile(r"(\d+\.\d+)"),
    re.compile(r"version (\d+\.\d+)"),
]

C_STANDARDS = ["c89", "c99", "c11", "c17"]
CPP_STANDARDS = ["c++98", "c++11", "c++14", "c++17"]

# (minimum major version, standard) per family
CLANG_CPP_ADDITIONS = [(9, "c++20"), (17, "c++23")]
GCC_CPP_ADDITIONS = [(11, "c++20"), (13, "c++23")]

GCC_VERSION_MARKERS = ("GCC", "gcc", "Ubuntu", "Copyright (C)")
SIXTY_FOUR_BIT_MARKERS = ("64", "x86_64", "amd64")

COMPILER_DISPLAY_NAMES = {
    "clang": "Clang",
    "clang++": "Clang++",
    "apple-clang": "Apple Clang",
    "gcc": "GCC",
    "g++": "G++",
    "msvc": "MSVC",
}


def _file_name(path: str) -> str:
    """Last path component, accepting both separators."""
    return re.split(r"[\\/]", path)[-1]


def classify_compiler_type(compiler_path: str, version_output: str) -> str:
    """
    Determine the compiler type from its file name, then its version text.

    Args:
        compiler_path: Candidate path
        version_output: Output of '<compiler> --version'

    Returns:
        One of 'clang', 'clang++', 'gcc', 'g++', 'msvc', 'apple-clang'

    Example:
        >>> classify_compiler_type("/usr/bin/clang++-18", "clang version 18.1.8")
        'clang++'
        >>> classify_compiler_type("/usr/bin/cc", "cc (Debian 12.2.0-14) 12.2.0")
        'gcc'
    """
    filename = _file_name(compiler_path).lower()

    if "cl.exe" in filename:
        return "msvc"
    if "clang++" in filename:
        return "clang++"
    if "clang" in filename:
        return "apple-clang" if "Apple" in version_output else "clang"
    if "g++" in filename or filename == "c++":
        return "g++"
    if "gcc" in filename or "cc" in filename:
        return "gcc"

    if "clang" in version_output:
        return "apple-clang" if "Apple" in version_output else "clang"
    if any(marker in version_output for marker in GCC_VERSION_MARKERS):
        return "g++" if "++" in filename else "gcc"

    return "clang"


def parse_version(version_output: str) -> str:
    """
    Extract a version number from compiler output.

    A bare major version ("19") matches none of the patterns and yields
    'unknown', while "19.1" yields "19.1".

    Example:
        >>> parse_version("gcc (GCC) 13.2.0")
        '13.2.0'
        >>> parse_version("no digits here")
        'unknown'
    """
    for pattern in VERSION_PATTERNS:
        match = pattern.search(version_output)
        if match:
            return match.group(1)
    return "unknown"


def supported_standards(compiler_type: str, version: str) -> List[str]:
    """
    Language standards a compiler accepts.

    C++ drivers (types containing '++') report C++ standards, every other type
    reports C standards. Clang and GCC families gain C++20/C++23 at their own
    major version thresholds.
    """
    major = major_version(version)
    cpp_standards = list(CPP_STANDARDS)

    if "clang" in compiler_type:
        additions = CLANG_CPP_ADDITIONS
    elif "gcc" in compiler_type or "g++" in compiler_type:
        additions = GCC_CPP_ADDITIONS
    else:
        additions = []

    for minimum, standard in additions:
        if major >= minimum:
            cpp_standards.append(standard)

    return cpp_standards if "++" in compiler_type else list(C_STANDARDS)


def generate_compiler_name(compiler_type: str, version: str) -> str:
    """
    Display name for a compiler.

    Example:
        >>> generate_compiler_name("apple-clang", "15.0.0")
        'Apple Clang 15.0.0'
        >>> generate_compiler_name("gcc", "unknown")
        'GCC'
    """
    base_name = COMPILER_DISPLAY_NAMES.get(compiler_type, compiler_type.upper())
    version_str = f" {version}" if version != "unknown" else ""
    return f"{base_name}{version_str}"


class CompilerProber:
    """
    Tests candidate paths and builds CompilerInfo records.

    The prober itself is stateless; all per-run state lives in the
    DedupRegistry passed to probe().
    """

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize prober.

        Args:
            runner: Process runner used for compiler queries
            timeout_ms: Timeout for each compiler query
            logger: Logger to report to (default: module logger)
        """
        self.logger = logger or logging.getLogger(__name__)
        self.runner = runner or ProcessRunner(logger=self.logger)
        self.timeout_ms = timeout_ms

    def probe(
        self, compiler_path: str, registry: DedupRegistry
    ) -> Optional[CompilerInfo]:
        """
        Probe one candidate path.

        Args:
            compiler_path: Candidate path produced by a search strategy
            registry: Deduplication registry of the current detection run

        Returns:
            CompilerInfo, or None if the path is not a usable compiler or was
            discarded as a duplicate
        """
        try:
            return self._probe(compiler_path, registry)
        except Exception as e:
            self.logger.debug(f"Failed to test compiler {compiler_path}: {e}")
            return None

    def _probe(
        self, compiler_path: str, registry: DedupRegistry
    ) -> Optional[CompilerInfo]:
        self.logger.debug(f"Testing compiler: {compiler_path}")

        if not is_executable(compiler_path):
            return None

        resolved = real_path(compiler_path)

        version_output = self.query_version(compiler_path)
        if not version_output:
            self.logger.debug(f"No version output from {compiler_path}")
            return None

        compiler_type = classify_compiler_type(compiler_path, version_output)
        version = parse_version(version_output)
        standards = supported_standards(compiler_type, version)
        is_64bit = self.query_is_64bit(compiler_path)
        priority = calculate_priority(compiler_type, version, compiler_path)

        fingerprint = f"{compiler_type}-{version}"
        outcome = registry.register(compiler_path, resolved, fingerprint, priority)
        if not outcome.accepted:
            return None

        info = CompilerInfo(
            path=compiler_path,
            name=generate_compiler_name(compiler_type, version),
            type=compiler_type,
            version=version,
            supported_standards=standards,
            is_64bit=is_64bit,
            priority=priority,
            capabilities=CompilerCapabilities(),
        )
        self.logger.debug(
            f"Found compiler: {info.name} ({compiler_type} {version}) at {compiler_path} "
            f"(real: {resolved}, priority: {priority})"
        )
        return info

    def query_version(self, compiler_path: str) -> str:
        """
        Run '<compiler> --version'.

        Returns:
            stdout, or stderr when stdout is empty (MSVC prints its banner
            there); empty string if the compiler produced nothing
        """
        result = self.runner.run_command(
            compiler_path, ["--version"], timeout_ms=self.timeout_ms
        )
        # Spawn failures and watchdog kills carry our own message, not the compiler's
        if result.killed or (result.exit_code == -1 and not result.stdout):
            return ""
        return result.stdout.strip() or result.stderr.strip()

    def query_is_64bit(self, compiler_path: str) -> bool:
        """
        Check the target machine triple reported by '-dumpmachine'.

        Defaults to True when the query fails.
        """
        result = self.runner.run_command(
            compiler_path, ["-dumpmachine"], timeout_ms=self.timeout_ms
        )
        triple = result.stdout.strip()
        if result.exit_code != 0 or not triple:
            return True
        return any(marker in triple for marker in SIXTY_FOUR_BIT_MARKERS)
