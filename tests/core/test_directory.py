"""
Unit tests for compilerkit.core.directory module.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from compilerkit.core.directory import (
    DirectoryError,
    get_default_cache_file,
    get_global_cache_dir,
)
from compilerkit.core.exceptions import CompilerKitError


@pytest.mark.skipif(os.name == "nt", reason="home directory layout of POSIX hosts")
def test_global_dir_under_home():
    with patch("pathlib.Path.home", return_value=Path("/home/dev")):
        assert get_global_cache_dir() == Path("/home/dev/.compilerkit")


@pytest.mark.skipif(os.name != "nt", reason="USERPROFILE layout of Windows hosts")
def test_global_dir_under_userprofile():
    with patch.dict(os.environ, {"USERPROFILE": r"C:\Users\dev"}):
        assert get_global_cache_dir() == Path(r"C:\Users\dev\.compilerkit")


def test_windows_without_userprofile():
    with patch("os.name", "nt"), patch.dict(os.environ, {}, clear=True):
        with pytest.raises(DirectoryError, match="USERPROFILE") as exc_info:
            get_global_cache_dir()

    assert isinstance(exc_info.value, CompilerKitError)


def test_default_cache_file():
    with patch(
        "compilerkit.core.directory.get_global_cache_dir", return_value=Path("/state")
    ):
        assert get_default_cache_file() == Path("/state/compilers.json")
