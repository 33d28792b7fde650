"""
Pytest configuration and shared fixtures for CompilerKit tests.
"""

import os
import stat
from pathlib import Path

import pytest

from compilerkit.core.platform import PlatformInfo
from compilerkit.execution.runner import ExecutionResult


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that use compilers installed on this machine",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


class FakeRunner:
    """
    Stand-in for ProcessRunner answering commands from a table.

    Unknown commands behave like a spawn failure (exit code -1).
    """

    def __init__(self):
        self.responses = {}
        self.calls = []

    def add(self, command, args, stdout="", stderr="", exit_code=0):
        self.responses[(str(command), tuple(args))] = ExecutionResult(
            stdout=stdout, stderr=stderr, exit_code=exit_code
        )

    def add_compiler(self, path, version_output, machine="x86_64-pc-linux-gnu"):
        self.add(path, ["--version"], stdout=version_output)
        self.add(path, ["-dumpmachine"], stdout=f"{machine}\n")

    def run_command(self, command, args, cwd=None, timeout_ms=30000):
        self.calls.append((str(command), list(args)))
        return self.responses.get(
            (str(command), tuple(args)),
            ExecutionResult(stderr=f"No such file: {command}", exit_code=-1),
        )

    def execute(self, request):
        return self.run_command(request.command, request.args, cwd=request.cwd)


@pytest.fixture
def fake_runner():
    """Empty FakeRunner."""
    return FakeRunner()


@pytest.fixture
def make_executable():
    """Factory creating an executable file (parents included)."""

    def _make(path: Path, content: str = "#!/bin/sh\n") -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def platform_linux():
    """Linux platform info."""
    return PlatformInfo("linux", "x64", "6.5.0", "ubuntu")


@pytest.fixture
def platform_macos():
    """macOS platform info."""
    return PlatformInfo("macos", "arm64", "14.1")


@pytest.fixture
def platform_windows():
    """Windows platform info."""
    return PlatformInfo("windows", "x64", "10.0.19041")


@pytest.fixture
def version_outputs():
    """Typical '--version' banners."""
    return {
        "clang": "clang version 19.1.0\nTarget: x86_64-pc-linux-gnu\nThread model: posix\n",
        "apple-clang": (
            "Apple clang version 15.0.0 (clang-1500.3.9.4)\n"
            "Target: arm64-apple-darwin23.4.0\n"
        ),
        "gcc": "gcc (Ubuntu 13.2.0-4ubuntu3) 13.2.0\nCopyright (C) 2023 Free Software Foundation, Inc.\n",
        "g++": "g++ (GCC) 11.4.0\nCopyright (C) 2021 Free Software Foundation, Inc.\n",
        "msvc": "Microsoft (R) C/C++ Optimizing Compiler Version 19.38.33133 for x64\n",
    }
