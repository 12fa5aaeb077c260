"""
In-memory build backend for tests and dry runs.

MockBuilder resolves versions from a fixed table instead of the network and
"builds" tiny shell scripts instead of compiling anything, so the cache and
install logic can be exercised deterministically.

Example:
    >>> builder = MockBuilder({
    ...     "github.com/cszatmary/go-fish": {
    ...         "v0.1.0": "v0.1.0",
    ...         "22d10c9b658df297b17b33c836a60fb943ef5a5f": "v0.0.0-20201203230243-22d10c9b658d",
    ...     },
    ... })
    >>> builder.resolve_version("github.com/cszatmary/go-fish", "")
    'v0.1.0'
"""

import threading
import time
from collections import Counter
from pathlib import Path
from typing import Iterable, Mapping, Optional, Tuple, Union

from packaging.version import InvalidVersion, Version

from shed.core.exceptions import BuildError, ResolutionError
from shed.core.filesystem import make_executable
from shed.core.interfaces import Builder
from shed.core.platform import PlatformInfo, detect_platform
from shed.core.tool import REF_LATEST, short_name

FailingKey = Union[str, Tuple[str, str]]


def is_release_version(version: str) -> bool:
    """Return True for plain release versions such as 'v1.2.3'."""
    try:
        parsed = Version(version)
    except InvalidVersion:
        return False
    return not (parsed.is_prerelease or parsed.is_devrelease)


class MockBuilder(Builder):
    """
    Builder backed by a fixed ``{import_path: {ref: canonical_version}}`` table.

    Attributes:
        available: Resolution table
        build_delay: Seconds each build sleeps, to widen race windows in tests
        failing: Import paths or (import_path, version) pairs whose builds fail
        build_counts: Number of builds per (import_path, version)
    """

    def __init__(
        self,
        available: Mapping[str, Mapping[str, str]],
        build_delay: float = 0.0,
        failing: Iterable[FailingKey] = (),
        platform: Optional[PlatformInfo] = None,
    ):
        self.available = {path: dict(refs) for path, refs in available.items()}
        self.build_delay = build_delay
        self.failing = set(failing)
        self.platform = platform or detect_platform()
        self.build_counts: Counter = Counter()
        self._lock = threading.Lock()

    @property
    def total_builds(self) -> int:
        """Number of builds performed so far."""
        with self._lock:
            return sum(self.build_counts.values())

    def resolve_version(self, import_path: str, ref: str) -> str:
        refs = self.available.get(import_path)
        if refs is None:
            raise ResolutionError(import_path, ref, "unknown module")

        if not ref or ref == REF_LATEST:
            versions = set(refs.values())
            releases = [v for v in versions if is_release_version(v)]
            if releases:
                return max(releases, key=Version)
            return sorted(versions)[-1]

        if ref in refs:
            return refs[ref]
        if ref in refs.values():
            return ref
        raise ResolutionError(import_path, ref, "unknown revision")

    def build(self, import_path: str, version: str, dest_dir: Path) -> Path:
        with self._lock:
            self.build_counts[(import_path, version)] += 1

        if self.build_delay:
            time.sleep(self.build_delay)

        if import_path in self.failing or (import_path, version) in self.failing:
            raise BuildError(import_path, version, "mock build failure")
        if version not in self.available.get(import_path, {}).values():
            raise BuildError(import_path, version, "unknown version")

        executable = Path(dest_dir) / f"{short_name(import_path)}{self.platform.exe_suffix}"
        executable.write_text(f"#!/bin/sh\necho '{import_path} {version}'\n")
        make_executable(executable)
        return executable


__all__ = ["MockBuilder", "is_release_version"]
