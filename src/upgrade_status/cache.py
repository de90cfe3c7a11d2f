"""Disk-based caching with file locking."""

import hashlib
import json
import logging
import os
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Generator

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

CACHE_TYPES = ("releases", "plans")


class FileLock:
    """Cross-platform exclusive lock on a file."""

    def __init__(self, lock_file: Path) -> None:
        """Initialize file lock.

        Args:
            lock_file: Path to lock file
        """
        self.lock_file = lock_file
        self._lock_fd: int | None = None

    def _try_lock(self, fd: int) -> bool:
        try:
            if sys.platform == "win32":
                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
            else:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            return True
        except OSError:
            return False

    def acquire(self, timeout: float = 10.0) -> bool:
        """Acquire the lock.

        Args:
            timeout: Maximum time to wait for lock

        Returns:
            True if lock acquired, False otherwise
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + timeout

        while True:
            fd = os.open(str(self.lock_file), os.O_CREAT | os.O_RDWR)
            if self._try_lock(fd):
                self._lock_fd = fd
                return True
            os.close(fd)

            if time.monotonic() >= deadline:
                logger.warning(f"Could not acquire lock {self.lock_file} after {timeout}s")
                return False
            time.sleep(0.05)

    def release(self) -> None:
        """Release the lock."""
        if self._lock_fd is None:
            return
        try:
            if sys.platform == "win32":
                msvcrt.locking(self._lock_fd, msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(self._lock_fd, fcntl.LOCK_UN)
        except OSError as e:
            logger.debug(f"Error releasing lock {self.lock_file}: {e}")
        finally:
            os.close(self._lock_fd)
            self._lock_fd = None

    def __enter__(self) -> "FileLock":
        self.acquire()
        return self

    def __exit__(self, *args: Any) -> None:
        self.release()


def hash_key(key: str) -> str:
    """Create hash of key for filename."""
    return hashlib.sha256(key.encode()).hexdigest()


def write_json_atomic(target: Path, data: Any) -> None:
    """Write JSON to a temp file and rename it over the target."""
    temp_file = target.with_suffix(".tmp")
    with open(temp_file, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    temp_file.replace(target)


class Cache:
    """Disk cache with TTL support for release data and migration plans."""

    def __init__(self, cache_dir: Path, enabled: bool = True) -> None:
        """Initialize cache.

        Args:
            cache_dir: Directory to store cache files
            enabled: If False, every lookup misses and nothing is written
        """
        self.cache_dir = cache_dir
        self.enabled = enabled
        self.locks_dir = self.cache_dir / ".locks"

        if self.enabled:
            for cache_type in CACHE_TYPES:
                (self.cache_dir / cache_type).mkdir(parents=True, exist_ok=True)
            self.locks_dir.mkdir(parents=True, exist_ok=True)

    def _get_cache_file(self, cache_type: str, key: str) -> Path:
        if cache_type not in CACHE_TYPES:
            raise ValueError(f"Unknown cache type: {cache_type}")
        return self.cache_dir / cache_type / f"{hash_key(key)}.json"

    @contextmanager
    def _lock_key(self, key: str) -> Generator[None, None, None]:
        lock = FileLock(self.locks_dir / f"{hash_key(key)}.lock")
        try:
            lock.acquire()
            yield
        finally:
            lock.release()

    @staticmethod
    def _is_expired(cache_file: Path, ttl_hours: int) -> bool:
        """Check if cache file has expired (TTL 0 never expires)."""
        if not cache_file.exists():
            return True
        if ttl_hours == 0:
            return False

        modified_time = datetime.fromtimestamp(cache_file.stat().st_mtime)
        return datetime.now() > modified_time + timedelta(hours=ttl_hours)

    def get(self, key: str, cache_type: str, ttl_hours: int = 24) -> Any | None:
        """Get value from cache.

        Args:
            key: Cache key
            cache_type: Type of cache ("releases", "plans")
            ttl_hours: Time-to-live in hours

        Returns:
            Cached value or None if not found/expired
        """
        if not self.enabled:
            return None

        cache_file = self._get_cache_file(cache_type, key)
        if self._is_expired(cache_file, ttl_hours):
            return None

        with self._lock_key(key):
            try:
                with open(cache_file, "r", encoding="utf-8") as f:
                    return json.load(f).get("value")
            except FileNotFoundError:
                return None
            except json.JSONDecodeError as e:
                logger.warning(f"Corrupted cache file {cache_file}: {e}")
                cache_file.unlink(missing_ok=True)
                return None

    def set(self, key: str, value: Any, cache_type: str) -> bool:
        """Set value in cache.

        Returns:
            True if cached successfully, False otherwise
        """
        if not self.enabled:
            return False

        cache_file = self._get_cache_file(cache_type, key)

        with self._lock_key(key):
            try:
                write_json_atomic(
                    cache_file,
                    {"key": key, "value": value, "cached_at": datetime.now().isoformat()},
                )
                return True
            except TypeError as e:
                logger.error(f"Cannot serialize value for cache key {key}: {e}")
                return False
            except OSError as e:
                logger.error(f"Error writing cache file {cache_file}: {e}")
                return False

    def clear(self, cache_type: str | None = None) -> int:
        """Clear cache.

        Args:
            cache_type: Type of cache to clear (None = all)

        Returns:
            Number of files deleted
        """
        if not self.enabled:
            return 0

        cache_types = CACHE_TYPES if cache_type is None else (cache_type,)
        deleted_count = 0

        for name in cache_types:
            for file in (self.cache_dir / name).glob("*.json"):
                file.unlink(missing_ok=True)
                deleted_count += 1

        return deleted_count
