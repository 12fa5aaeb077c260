"""
Content-addressed store of built tool executables.

Every executable is stored under a key made of its import path, canonical
version and platform:

    <root>/tools/<escaped import path>/@v/<version>/<platform>/<short name>

Entries are immutable once written: ensuring an entry that already exists
never rebuilds it. Builds run in a scratch directory under ``<root>/tmp`` and
the result is renamed into place, so an interrupted build never leaves a
truncated executable behind.

Concurrent requests for the same key are deduplicated at two levels:
- Within a process, an in-flight table lets one thread build while the
  others wait for, and share, its outcome (success or failure).
- Across processes, the build runs under a per-key file lock.
Requests for different keys never wait on each other.

Example:
    >>> cache = Cache(Path('/tmp/shed-cache'))
    >>> version, path = cache.ensure('github.com/cszatmary/go-fish', 'v0.1.0')
    >>> print(path)
"""

import logging
import os
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Dict, Optional, Tuple

from shed.core.directory import ensure_cache_structure, get_global_cache_dir
from shed.core.exceptions import (
    BuildError,
    CacheError,
    CanceledError,
    ResolutionError,
    ToolNotInstalledError,
)
from shed.core.filesystem import FilesystemError, safe_rmtree, temporary_directory
from shed.core.interfaces import Builder
from shed.core.locking import BuildCoordinator, LockManager, LockTimeout
from shed.core.platform import PlatformInfo, detect_platform
from shed.core.tool import escape_path, short_name

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, str]


class Cache:
    """
    Directory-backed tool cache wrapping a Builder.

    The cache is an explicit object handed to whoever needs it; its
    in-flight build table is scoped to the instance.

    Attributes:
        root: Cache root directory
        platform: Platform the cached executables are built for
        lock_timeout: Seconds to wait for another process building the same key
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        builder: Optional[Builder] = None,
        platform: Optional[PlatformInfo] = None,
        lock_timeout: float = 600,
    ):
        self.root = Path(root) if root is not None else get_global_cache_dir()
        self.platform = platform or detect_platform()
        self.lock_timeout = lock_timeout
        self._builder = builder
        self._inflight: Dict[CacheKey, Future] = {}
        self._inflight_lock = threading.Lock()

    @property
    def builder(self) -> Builder:
        """Build backend; defaults to the Go builder."""
        if self._builder is None:
            from shed.cache.go import GoBuilder

            self._builder = GoBuilder(platform=self.platform)
        return self._builder

    def cache_dir(self) -> Path:
        """Return the cache root, creating it if needed."""
        return ensure_cache_structure(self.root)

    def clean(self) -> None:
        """
        Delete the whole cache directory.

        Idempotent. Callers must make sure no builds are running.

        Raises:
            CacheError: If the cache root is not a directory or cannot be removed
        """
        try:
            safe_rmtree(self.root)
        except FilesystemError as e:
            raise CacheError(f"Cannot clean cache: {e}") from e
        logger.info(f"Removed cache directory {self.root}")

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _key(self, import_path: str, version: str) -> CacheKey:
        return (import_path, version, self.platform.platform_string())

    def tool_dir(self, import_path: str, version: str) -> Path:
        """Directory holding the executable for one cache entry."""
        return (
            self.root
            / "tools"
            / escape_path(import_path)
            / "@v"
            / escape_path(version)
            / self.platform.platform_string()
        )

    def executable_path(self, import_path: str, version: str) -> Path:
        """Path the executable of one cache entry lives at, whether built or not."""
        name = f"{short_name(import_path)}{self.platform.exe_suffix}"
        return self.tool_dir(import_path, version) / name

    def tool_path(self, import_path: str, version: str) -> Path:
        """
        Return the built executable for a tool.

        Raises:
            ToolNotInstalledError: If the entry has not been built
        """
        path = self.executable_path(import_path, version)
        if not path.is_file():
            raise ToolNotInstalledError(import_path, version)
        return path

    # ------------------------------------------------------------------
    # Resolution and builds
    # ------------------------------------------------------------------

    def resolve(self, import_path: str, ref: str = "") -> str:
        """
        Resolve a version reference to a canonical version.

        Raises:
            ResolutionError: If the builder cannot resolve the reference
        """
        try:
            return self.builder.resolve_version(import_path, ref)
        except ResolutionError:
            raise
        except Exception as e:
            raise ResolutionError(import_path, ref, str(e)) from e

    def ensure(self, import_path: str, ref: str = "") -> Tuple[str, Path]:
        """
        Resolve ``ref`` and make sure the resulting version is built.

        Args:
            import_path: Import path of the tool
            ref: Empty or "latest", an explicit reference, or a canonical version

        Returns:
            Tuple of (canonical version, executable path)

        Raises:
            ResolutionError: If the reference cannot be resolved
            BuildError: If the build fails
        """
        version = self.resolve(import_path, ref)
        return version, self.install(import_path, version)

    def install(self, import_path: str, version: str) -> Path:
        """
        Make sure the executable for a canonical version exists.

        Concurrent calls for the same key result in a single build whose
        outcome every caller observes.

        Returns:
            Path to the executable

        Raises:
            BuildError: If the build fails
        """
        executable = self.executable_path(import_path, version)
        if executable.is_file():
            logger.debug(f"Cache hit: {import_path}@{version}")
            return executable

        key = self._key(import_path, version)
        with self._inflight_lock:
            future = self._inflight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[key] = future

        if not owner:
            logger.debug(f"Waiting for in-flight build of {import_path}@{version}")
            return future.result()

        try:
            path = self._build(import_path, version, executable)
        except Exception as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(path)
            return path
        finally:
            if not future.done():
                future.set_exception(CanceledError(f"{import_path}@{version}"))
            with self._inflight_lock:
                self._inflight.pop(key, None)

    def _build(self, import_path: str, version: str, executable: Path) -> Path:
        self.cache_dir()
        coordinator = BuildCoordinator(
            LockManager(self.root / "lock"), timeout=self.lock_timeout
        )
        key = f"{import_path}@{version}:{self.platform.platform_string()}"

        try:
            with coordinator.coordinate_build(key, executable) as should_build:
                if not should_build:
                    return executable

                with temporary_directory(self.root / "tmp", prefix="build-") as scratch:
                    built = self._run_builder(import_path, version, scratch)
                    executable.parent.mkdir(parents=True, exist_ok=True)
                    os.replace(built, executable)
        except LockTimeout as e:
            raise BuildError(
                import_path, version, "timed out waiting for another build of this tool"
            ) from e

        logger.info(f"Installed {import_path}@{version}")
        logger.debug(f"Executable: {executable}")
        return executable

    def _run_builder(self, import_path: str, version: str, scratch: Path) -> Path:
        try:
            built = Path(self.builder.build(import_path, version, scratch))
        except BuildError:
            raise
        except Exception as e:
            raise BuildError(import_path, version, str(e)) from e

        if not built.is_file():
            raise BuildError(import_path, version, f"builder produced no file at {built}")
        return built

    def evict(self, import_path: str, version: str) -> None:
        """
        Remove a cached executable if present.

        Empty parent directories are pruned up to ``<root>/tools``.

        Raises:
            CacheError: If the entry cannot be removed
        """
        tool_dir = self.tool_dir(import_path, version)
        if not tool_dir.exists():
            return

        try:
            safe_rmtree(tool_dir, require_prefix=self.root)
        except (FilesystemError, ValueError) as e:
            raise CacheError(f"Cannot evict {import_path}@{version}: {e}") from e
        logger.info(f"Evicted {import_path}@{version} from cache")

        tools_root = self.root / "tools"
        parent = tool_dir.parent
        while parent != tools_root and tools_root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent


__all__ = ["Cache"]
