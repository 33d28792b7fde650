"""
Unit tests for the platform detection module.

Tests cover:
- PlatformInfo dataclass methods
- OS detection with mocking
- Architecture detection and normalization
- Linux distribution detection
- Cache behavior
"""

from unittest.mock import patch

import pytest

from compilerkit.core.platform import (
    PlatformInfo,
    _detect_architecture,
    _detect_os,
    _detect_os_version,
    clear_platform_cache,
    detect_platform,
)


@pytest.fixture(autouse=True)
def fresh_platform_cache():
    clear_platform_cache()
    yield
    clear_platform_cache()


class TestPlatformInfo:
    """Tests for PlatformInfo dataclass."""

    def test_platform_string(self):
        assert PlatformInfo("linux", "x64", "6.5.0", "ubuntu").platform_string() == "linux-x64"
        assert PlatformInfo("macos", "arm64").platform_string() == "macos-arm64"

    def test_str(self):
        assert str(PlatformInfo("linux", "x64", "6.5.0", "ubuntu")) == "linux-x64 (ubuntu) v6.5.0"
        assert str(PlatformInfo("windows", "x64")) == "windows-x64"


class TestDetectOS:
    """Tests for _detect_os."""

    @pytest.mark.parametrize(
        "system,expected",
        [("Windows", "windows"), ("Linux", "linux"), ("Darwin", "macos")],
    )
    def test_supported(self, system, expected):
        with patch("platform.system", return_value=system):
            assert _detect_os() == expected

    def test_unsupported(self):
        with patch("platform.system", return_value="SunOS"):
            with pytest.raises(RuntimeError, match="Unsupported operating system"):
                _detect_os()


class TestDetectArchitecture:
    """Tests for _detect_architecture."""

    @pytest.mark.parametrize(
        "machine,expected",
        [
            ("x86_64", "x64"),
            ("AMD64", "x64"),
            ("aarch64", "arm64"),
            ("arm64", "arm64"),
            ("i686", "x86"),
            ("armv7l", "arm"),
            ("riscv64", "riscv64"),
        ],
    )
    def test_normalization(self, machine, expected):
        with patch("platform.machine", return_value=machine):
            assert _detect_architecture() == expected


class TestDetectOSVersion:
    """Tests for _detect_os_version."""

    def test_linux_uses_kernel_release(self):
        with patch("platform.system", return_value="Linux"), patch(
            "platform.release", return_value="6.5.0-14-generic"
        ):
            assert _detect_os_version() == "6.5.0-14-generic"

    def test_macos_unknown(self):
        with patch("platform.system", return_value="Darwin"), patch(
            "platform.mac_ver", return_value=("", ("", "", ""), "")
        ):
            assert _detect_os_version() == "unknown"


class TestDetectPlatform:
    """Tests for detect_platform."""

    def test_linux_distribution(self):
        with patch("platform.system", return_value="Linux"), patch(
            "platform.machine", return_value="x86_64"
        ), patch("platform.release", return_value="6.5.0"), patch(
            "compilerkit.core.platform.distro.id", return_value="fedora"
        ):
            info = detect_platform()

        assert info == PlatformInfo("linux", "x64", "6.5.0", "fedora")

    def test_no_distribution_outside_linux(self):
        with patch("platform.system", return_value="Darwin"), patch(
            "platform.machine", return_value="arm64"
        ), patch("platform.mac_ver", return_value=("14.1", ("", "", ""), "")), patch(
            "compilerkit.core.platform.distro.id"
        ) as distro_id:
            info = detect_platform()

        assert info == PlatformInfo("macos", "arm64", "14.1", "")
        distro_id.assert_not_called()

    def test_cached(self):
        with patch("platform.system", return_value="Linux"), patch(
            "platform.machine", return_value="x86_64"
        ), patch("compilerkit.core.platform.distro.id", return_value="ubuntu"):
            first = detect_platform()
            second = detect_platform()

        assert first is second
