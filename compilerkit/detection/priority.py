"""
Compiler priority scoring.

priority = type weight + major version * 10 - 20 for OS-managed locations

    Clang 18.1.0 in /opt/llvm      -> 100 + 180      = 280
    GCC 13.2.0 in /usr/bin         ->  80 + 130 - 20 = 190

All functions here are pure and never raise for string input.
"""

import re

TYPE_WEIGHTS = {
    "clang": 100,
    "clang++": 100,
    "apple-clang": 90,
    "gcc": 80,
    "g++": 80,
    "msvc": 70,
}

VERSION_WEIGHT = 10
SYSTEM_PATH_PENALTY = 20

# Directories managed by the operating system rather than the user
RESERVED_SYSTEM_DIRS = (
    "/usr/bin",
    "c:/windows",
)

_FIRST_INTEGER = re.compile(r"(\d+)")


def type_weight(compiler_type: str) -> int:
    """Weight of a compiler family; unknown types weigh 0."""
    return TYPE_WEIGHTS.get(compiler_type, 0)


def major_version(version: str) -> int:
    """
    First integer found in a version string.

    Example:
        >>> major_version("19.1.0")
        19
        >>> major_version("unknown")
        0
    """
    if not isinstance(version, str):
        return 0
    match = _FIRST_INTEGER.search(version)
    return int(match.group(1)) if match else 0


def is_reserved_system_path(path: str) -> bool:
    """
    Check whether a compiler path lies under an OS-managed directory.

    Windows paths are compared case-insensitively with either separator.
    """
    if not isinstance(path, str) or not path:
        return False

    normalized = path.replace("\\", "/")
    if re.match(r"^[A-Za-z]:/", normalized):
        normalized = normalized.lower()

    for reserved in RESERVED_SYSTEM_DIRS:
        if normalized == reserved or normalized.startswith(reserved + "/"):
            return True
    return False


def calculate_priority(compiler_type: str, version: str, path: str) -> int:
    """
    Calculate the ranking score of a compiler.

    Args:
        compiler_type: Compiler type ('clang', 'g++', 'msvc', ...)
        version: Version string (e.g., '19.1.0' or 'unknown')
        path: Path the compiler was found under

    Returns:
        Priority score (higher values indicate preferred compilers)
    """
    priority = type_weight(compiler_type)
    priority += major_version(version) * VERSION_WEIGHT
    if is_reserved_system_path(path):
        priority -= SYSTEM_PATH_PENALTY
    return priority
