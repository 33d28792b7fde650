"""
Tests for compilerkit.detection.cache module.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from filelock import Timeout

from compilerkit.core.exceptions import CacheError, CacheLockTimeout
from compilerkit.detection.cache import CACHE_VERSION, DetectionCache
from compilerkit.detection.models import CompilerInfo, DetectionResult


@pytest.fixture
def cache_file(tmp_path):
    return tmp_path / "cache" / "compilers.json"


@pytest.fixture
def sample_result():
    clang = CompilerInfo(
        path="/opt/llvm/bin/clang++",
        name="Clang++ 19.1.0",
        type="clang++",
        version="19.1.0",
        supported_standards=["c++98", "c++11", "c++14", "c++17", "c++20", "c++23"],
        priority=290,
    )
    gcc = CompilerInfo(
        path="/usr/bin/gcc",
        name="GCC 13.2.0",
        type="gcc",
        version="13.2.0",
        supported_standards=["c89", "c99", "c11", "c17"],
        priority=190,
    )
    return DetectionResult(success=True, compilers=[clang, gcc], recommended=clang)


class TestDetectionCache:
    """Tests for DetectionCache."""

    def test_default_location(self, tmp_path):
        default_file = tmp_path / "home" / "compilers.json"
        with patch(
            "compilerkit.detection.cache.get_default_cache_file", return_value=default_file
        ):
            cache = DetectionCache()
        assert cache.cache_file == default_file

    def test_lock_path(self, cache_file):
        cache = DetectionCache(cache_file)
        assert cache.lock_path == cache_file.parent / "lock" / "compilers.json.lock"

    def test_save_and_load(self, cache_file, sample_result):
        cache = DetectionCache(cache_file)
        cache.save(sample_result)

        loaded = cache.load()

        assert loaded is not None
        assert loaded.success is True
        assert [c.path for c in loaded.compilers] == [c.path for c in sample_result.compilers]
        assert loaded.recommended.name == "Clang++ 19.1.0"
        assert loaded.compilers[1].supported_standards == ["c89", "c99", "c11", "c17"]

    def test_saved_file_is_json(self, cache_file, sample_result):
        DetectionCache(cache_file).save(sample_result)

        data = json.loads(cache_file.read_text(encoding="utf-8"))

        assert data["cache_version"] == CACHE_VERSION
        assert "cached_at" in data
        assert data["compilers"][0]["is64Bit"] is True

    def test_load_missing(self, cache_file):
        assert DetectionCache(cache_file).load() is None

    def test_load_corrupt(self, cache_file):
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("{not json", encoding="utf-8")

        assert DetectionCache(cache_file).load() is None

    def test_load_other_version(self, cache_file, sample_result):
        data = sample_result.to_dict()
        data["cache_version"] = "0.1"
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(json.dumps(data), encoding="utf-8")

        assert DetectionCache(cache_file).load() is None

    def test_load_malformed_compiler(self, cache_file):
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(
            json.dumps({"cache_version": CACHE_VERSION, "success": True, "compilers": [{}]}),
            encoding="utf-8",
        )

        assert DetectionCache(cache_file).load() is None

    def test_load_unknown_compiler_type(self, cache_file, sample_result):
        data = sample_result.to_dict()
        data["cache_version"] = CACHE_VERSION
        data["compilers"][0]["type"] = "tcc"
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(json.dumps(data), encoding="utf-8")

        assert DetectionCache(cache_file).load() is None

    def test_save_failure_raises_cache_error(self, cache_file, sample_result):
        cache = DetectionCache(cache_file)

        with patch(
            "compilerkit.detection.cache.atomic_write", side_effect=OSError("disk full")
        ):
            with pytest.raises(CacheError, match="disk full"):
                cache.save(sample_result)

    def test_lock_timeout(self, cache_file, sample_result):
        cache = DetectionCache(cache_file, lock_timeout=1)
        lock = MagicMock()
        lock.__enter__.side_effect = Timeout(str(cache.lock_path))

        with patch("compilerkit.detection.cache.FileLock", return_value=lock):
            with pytest.raises(CacheLockTimeout):
                cache.save(sample_result)

        assert not cache_file.exists()

    def test_clear(self, cache_file, sample_result):
        cache = DetectionCache(cache_file)
        cache.save(sample_result)

        assert cache.clear() is True
        assert not cache_file.exists()
        assert cache.clear() is False

    def test_info(self, cache_file, sample_result):
        cache = DetectionCache(cache_file)
        assert cache.info() is None

        cache.save(sample_result)
        info = cache.info()

        assert info["path"] == str(cache_file)
        assert info["cache_version"] == CACHE_VERSION
        assert info["compilers"] == 2
        assert info["cached_at"]
