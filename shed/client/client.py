"""
High-level shed client.

``Shed`` ties a project's lockfile to a tool cache and exposes the
operations the command line offers: install, uninstall, list, tool path
lookup and cache cleanup.

Example:
    >>> from shed.client import Shed
    >>>
    >>> shed = Shed()
    >>> install_set, errors = shed.install("github.com/golangci/golangci-lint/cmd/golangci-lint@v1.33.0")
    >>> install_set.apply()
    >>> print(shed.tool_path("golangci-lint"))
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from shed.cache.store import Cache
from shed.config.lockfile import LOCKFILE_NAME, Lockfile
from shed.config.settings import ShedSettings
from shed.core.exceptions import CacheError, ErrorList, LockfileError, OperationError
from shed.core.tool import Tool
from shed.client.installset import InstallSet, resolve_install_set

logger = logging.getLogger(__name__)


def resolve_lockfile_path(cwd: Path) -> Optional[Path]:
    """
    Find the lockfile that applies to ``cwd``.

    Looks for ``shed.lock`` in ``cwd`` and then in each parent directory up
    to the filesystem root. Sibling directories are never searched.

    Returns:
        Path to the nearest lockfile, or None if there is none
    """
    directory = Path(cwd).absolute()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / LOCKFILE_NAME
        if candidate.is_file():
            return candidate
    return None


def create_cache(settings: ShedSettings) -> Cache:
    """Build the default cache and Go builder from settings."""
    from shed.cache.go import GoBuilder

    builder = GoBuilder(
        go_binary=settings.go_binary,
        proxy=settings.go_proxy,
        http_timeout=settings.http_timeout,
    )
    return Cache(settings.cache_dir, builder=builder, lock_timeout=settings.lock_timeout)


class Shed:
    """
    Client for one project's tools.

    The lockfile is loaded once at construction and owned by this client for
    the rest of the command.

    Attributes:
        lockfile_path: Path the lockfile is read from and written to
        lockfile: In-memory lockfile
        cache: Tool cache
        settings: Settings in effect
    """

    def __init__(
        self,
        lockfile_path: Optional[Path] = None,
        cache: Optional[Cache] = None,
        settings: Optional[ShedSettings] = None,
        cwd: Optional[Path] = None,
    ):
        """
        Initialize the client.

        Args:
            lockfile_path: Lockfile to use (default: nearest shed.lock above
                the working directory, or a new one in the working directory)
            cache: Cache to use (default: built from settings)
            settings: Settings (default: ShedSettings())
            cwd: Directory to start lockfile discovery from (default: cwd)

        Raises:
            LockfileError: If the lockfile exists but cannot be read or parsed
        """
        self.settings = settings or ShedSettings()

        if lockfile_path is None:
            start = Path(cwd) if cwd is not None else Path.cwd()
            lockfile_path = resolve_lockfile_path(start) or start / LOCKFILE_NAME
        self.lockfile_path = Path(lockfile_path)
        logger.debug(f"Using lockfile {self.lockfile_path}")

        self.cache = cache if cache is not None else create_cache(self.settings)
        self.lockfile = Lockfile.load(self.lockfile_path)

    def cache_dir(self) -> Path:
        """Return the cache root, creating it if needed."""
        return self.cache.cache_dir()

    def clean_cache(self) -> None:
        """Delete every cached executable."""
        self.cache.clean()

    def install(self, *specs: str) -> Tuple[InstallSet, Optional[ErrorList]]:
        """
        Compute the install set for ``specs``.

        With no specs, every tool in the lockfile is verified and rebuilt if
        missing from the cache.

        Returns:
            Tuple of (install set, ErrorList of specs that failed to resolve
            or None). The install set contains every resolved spec and can
            be applied even when some specs failed.
        """
        return resolve_install_set(
            self.lockfile,
            specs,
            self.cache,
            self.lockfile_path,
            max_workers=self.settings.max_workers,
            evict_on_remove=self.settings.evict_on_remove,
        )

    def uninstall(self, *names: str) -> None:
        """
        Remove tools from the lockfile.

        Every name is attempted; the lockfile is written for those that were
        found.

        Raises:
            ErrorList: If any name does not match a tool
            LockfileError: If the lockfile cannot be written
        """
        errors: List[OperationError] = []
        removed: List[Tool] = []
        for name in names:
            try:
                removed.append(self.lockfile.remove(name, missing_ok=False))
            except LockfileError as e:
                errors.append(OperationError(name, e))

        self.lockfile.save(self.lockfile_path)
        for tool in removed:
            logger.info(f"Removed {tool.import_path}")
            if self.settings.evict_on_remove:
                try:
                    self.cache.evict(tool.import_path, tool.version)
                except (CacheError, OSError) as e:
                    logger.warning(f"Failed to evict {tool.import_path}@{tool.version}: {e}")

        if errors:
            raise ErrorList(errors)

    def list(self) -> List[Tool]:
        """Return all pinned tools sorted by import path."""
        return self.lockfile.to_list()

    def tool_path(self, name: str) -> Path:
        """
        Return the executable of a pinned tool.

        Raises:
            NotFoundError: If the lockfile has no such tool
            AmbiguousNameError: If the short name is ambiguous
            ToolNotInstalledError: If the tool has not been built yet
        """
        tool = self.lockfile.get(name)
        return self.cache.tool_path(tool.import_path, tool.version)


__all__ = ["Shed", "resolve_lockfile_path", "create_cache"]
