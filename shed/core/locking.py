"""
Concurrent access control for the shed tool cache.

Several shed processes (for example two terminals in the same project, or
parallel CI jobs sharing a cache) may try to build the same tool at the
same time. This module provides per-key file locks so that only one
process builds a given cache entry while the others wait and then reuse it.

Usage:
    from shed.core.locking import LockManager, BuildCoordinator

    lock_manager = LockManager(cache_root / "lock")
    coordinator = BuildCoordinator(lock_manager)
    with coordinator.coordinate_build(key, executable) as should_build:
        if should_build:
            build_tool(...)
"""

import hashlib
import logging
import re
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def lock_file_name(key: str) -> str:
    """
    Turn an arbitrary cache key into a safe lock file name.

    The readable part is lossy, so a digest of the full key keeps distinct
    keys on distinct files: ``github.com/a/b@v1.0.0:linux-amd64`` becomes
    ``build-github.com-a-b-v1.0.0-linux-amd64-<16 hex digits>.lock``.
    """
    readable = _UNSAFE_CHARS.sub("-", key).strip("-")
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
    return f"build-{readable}-{digest}.lock"


class LockManager:
    """
    Manages cross-process locks for cache builds.

    Uses file-based locking with the `filelock` library for cross-platform
    compatibility and automatic cleanup on process death.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)

    @contextmanager
    def build_lock(self, key: str, timeout: float = 600):
        """
        Acquire the lock for one cache entry.

        Args:
            key: Cache key (import path, version and platform)
            timeout: Maximum wait time in seconds (default: 600 for long builds)

        Yields:
            None

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.lock_dir / lock_file_name(key)
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired build lock: {lock_path}")
                yield
                logger.debug(f"Released build lock: {lock_path}")
        except LockTimeout as e:
            logger.error(
                f"Could not acquire build lock for {key} after {timeout}s. "
                "Another process may be building this tool."
            )
            raise LockTimeout(str(lock_path)) from e


class BuildCoordinator:
    """
    Coordinate builds of one cache entry across processes.

    If the executable already exists, no build is needed. Otherwise the
    per-key lock is taken and the existence check repeated, since another
    process may have completed the build while this one was waiting.
    """

    def __init__(self, lock_manager: LockManager, timeout: float = 600):
        self.lock_manager = lock_manager
        self.timeout = timeout

    @contextmanager
    def coordinate_build(self, key: str, executable: Path):
        """
        Decide whether this process should build ``executable``.

        Yields:
            bool: True if this process should build, False if the executable
            already exists. The lock is held for the duration of the block.
        """
        if executable.is_file():
            logger.debug(f"Executable already cached, no build needed: {executable}")
            yield False
            return

        with self.lock_manager.build_lock(key, timeout=self.timeout):
            if executable.is_file():
                logger.info(f"Another process completed build: {executable}")
                yield False
            else:
                yield True


__all__ = [
    "LockManager",
    "BuildCoordinator",
    "LockTimeout",
    "lock_file_name",
]
