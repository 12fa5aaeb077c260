"""
Core interfaces for shed.

This module defines the abstract build backend the cache depends on.
The cache requests versions and executables through this interface without
knowing whether they come from the Go toolchain, a test double, or another
backend.
"""

from abc import ABC, abstractmethod
from pathlib import Path


class Builder(ABC):
    """
    Abstract interface for components that resolve and build tools.

    Implementations must be safe to call from several threads at once.
    """

    @abstractmethod
    def resolve_version(self, import_path: str, ref: str) -> str:
        """
        Resolve a version reference to a canonical version.

        Must be deterministic for a given ``(import_path, ref)`` pair at a
        given point in time, and must return an already-canonical version
        unchanged.

        Args:
            import_path: Import path of the tool
            ref: Version reference; empty or "latest" for the latest version,
                otherwise a tag, branch, commit or canonical version

        Returns:
            Canonical version string (e.g., "v1.33.0")

        Raises:
            ResolutionError: If the reference cannot be resolved
        """
        pass

    @abstractmethod
    def build(self, import_path: str, version: str, dest_dir: Path) -> Path:
        """
        Build the tool and place its executable in ``dest_dir``.

        Args:
            import_path: Import path of the tool
            version: Canonical version to build
            dest_dir: Existing, empty directory to write the executable to

        Returns:
            Path to the built executable inside ``dest_dir``

        Raises:
            BuildError: If the build fails
        """
        pass


__all__ = ["Builder"]
