"""
Host platform identification.

The detector uses the OS name to choose a compiler search strategy; the
architecture and Linux distribution are informational.

Usage:
    from compilerkit.core.platform import detect_platform

    host = detect_platform()
    print(host)  # e.g. 'linux-x64 (ubuntu) v6.5.0'
"""

import functools
import platform
from dataclasses import dataclass

import distro

_OS_NAMES = {
    "windows": "windows",
    "linux": "linux",
    "darwin": "macos",
}

_ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
}


@dataclass
class PlatformInfo:
    """
    Host description.

    Attributes:
        os: 'windows', 'linux' or 'macos'
        arch: Normalized CPU architecture ('x64', 'arm64', 'x86', 'arm', ...)
        os_version: Kernel release, macOS product version or Windows build
        distribution: distro id on Linux ('ubuntu', 'fedora', ...), else empty
    """

    os: str
    arch: str
    os_version: str = ""
    distribution: str = ""

    def platform_string(self) -> str:
        """
        '<os>-<arch>' identifier.

        Example:
            >>> PlatformInfo('macos', 'arm64').platform_string()
            'macos-arm64'
        """
        return f"{self.os}-{self.arch}"

    def __str__(self) -> str:
        text = self.platform_string()
        if self.distribution:
            text += f" ({self.distribution})"
        if self.os_version:
            text += f" v{self.os_version}"
        return text


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Identify the running host (computed once per process).

    Raises:
        RuntimeError: On an operating system without a search strategy
    """
    os_name = _detect_os()
    return PlatformInfo(
        os=os_name,
        arch=_detect_architecture(),
        os_version=_detect_os_version(),
        distribution=distro.id() if os_name == "linux" else "",
    )


def _detect_os() -> str:
    system = platform.system().lower()
    try:
        return _OS_NAMES[system]
    except KeyError:
        raise RuntimeError(f"Unsupported operating system: {system}") from None


def _detect_architecture() -> str:
    """Map platform.machine() onto the short architecture names."""
    machine = platform.machine().lower()
    if machine in _ARCH_ALIASES:
        return _ARCH_ALIASES[machine]
    # armv7l, armv6l, ...
    return "arm" if machine.startswith("arm") else machine


def _detect_os_version() -> str:
    system = platform.system().lower()
    if system == "darwin":
        return platform.mac_ver()[0] or "unknown"
    if system == "linux":
        return platform.release()
    return platform.version()


def clear_platform_cache():
    """Forget the cached detect_platform() result (used by tests)."""
    detect_platform.cache_clear()


__all__ = [
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
]
