"""
On-disk cache of the last detection result.

The cache file is JSON holding DetectionResult.to_dict() plus a format version
and timestamp. Reads and writes happen under a file lock so concurrent
compilerkit processes never observe a half-written file.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout

from compilerkit.core.directory import get_default_cache_file
from compilerkit.core.exceptions import CacheError, CacheLockTimeout
from compilerkit.core.filesystem import atomic_write
from compilerkit.detection.models import DetectionResult

logger = logging.getLogger(__name__)

CACHE_VERSION = "1.0"


class DetectionCache:
    """
    Persist and restore a DetectionResult.

    Example:
        >>> cache = DetectionCache(Path("/tmp/compilers.json"))
        >>> cache.save(result)
        >>> cache.load().recommended.name
        'Clang 19.1.0'
    """

    def __init__(self, cache_file: Optional[Path] = None, lock_timeout: int = 30):
        """
        Initialize detection cache.

        Args:
            cache_file: Path to the cache file (default: ~/.compilerkit/compilers.json)
            lock_timeout: Timeout in seconds for acquiring the file lock
        """
        if cache_file is None:
            cache_file = get_default_cache_file()

        self.cache_file = Path(cache_file)
        self.lock_path = self.cache_file.parent / "lock" / f"{self.cache_file.name}.lock"
        self.lock_timeout = lock_timeout

    @contextmanager
    def _lock(self):
        """
        Acquire the cache file lock.

        Raises:
            CacheLockTimeout: If the lock cannot be acquired within timeout
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(self.lock_path, timeout=self.lock_timeout)

        try:
            with lock:
                yield
        except Timeout as e:
            logger.error(f"Failed to acquire cache lock within {self.lock_timeout}s")
            raise CacheLockTimeout(
                f"Could not acquire cache lock within {self.lock_timeout} seconds"
            ) from e

    def load(self) -> Optional[DetectionResult]:
        """
        Load the cached result.

        Returns:
            DetectionResult, or None if the cache is missing, corrupt or was
            written by another cache format version
        """
        if not self.cache_file.exists():
            logger.debug(f"No detection cache at {self.cache_file}")
            return None

        with self._lock():
            try:
                with open(self.cache_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Ignoring unreadable detection cache: {e}")
                return None

        if not isinstance(data, dict) or data.get("cache_version") != CACHE_VERSION:
            logger.info("Detection cache format changed, ignoring cached result")
            return None

        try:
            result = DetectionResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed detection cache: {e}")
            return None

        logger.debug(f"Loaded detection cache written at {data.get('cached_at')}")
        return result

    def save(self, result: DetectionResult) -> None:
        """
        Write a result to the cache atomically.

        Raises:
            CacheError: If the file cannot be written
            CacheLockTimeout: If the lock cannot be acquired
        """
        data = result.to_dict()
        data["cache_version"] = CACHE_VERSION
        data["cached_at"] = datetime.now().isoformat()

        with self._lock():
            try:
                atomic_write(self.cache_file, json.dumps(data, indent=2, ensure_ascii=False))
            except OSError as e:
                logger.error(f"Failed to save detection cache: {e}")
                raise CacheError(f"Failed to save detection cache: {e}") from e

        logger.debug(f"Saved {len(result.compilers)} compilers to {self.cache_file}")

    def clear(self) -> bool:
        """
        Remove the cache file.

        Returns:
            True if a cache file was removed
        """
        with self._lock():
            if not self.cache_file.exists():
                return False
            try:
                self.cache_file.unlink()
            except OSError as e:
                raise CacheError(f"Failed to remove detection cache: {e}") from e

        logger.info(f"Cleared detection cache at {self.cache_file}")
        return True

    def info(self) -> Optional[dict]:
        """Metadata of the cache file (path, timestamp, compiler count), or None."""
        if not self.cache_file.exists():
            return None
        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            return None
        if not isinstance(data, dict):
            return None
        return {
            "path": str(self.cache_file),
            "cache_version": data.get("cache_version"),
            "cached_at": data.get("cached_at"),
            "compilers": len(data.get("compilers", [])),
        }
