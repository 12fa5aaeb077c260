"""
shed client: lockfile discovery, install sets and the Shed facade.
"""

from .installset import (
    EnsureAbsent,
    EnsurePresent,
    InstallSet,
    resolve_install_set,
)
from .client import Shed, create_cache, resolve_lockfile_path

__all__ = [
    "Shed",
    "InstallSet",
    "EnsurePresent",
    "EnsureAbsent",
    "resolve_install_set",
    "resolve_lockfile_path",
    "create_cache",
]
