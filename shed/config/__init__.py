"""
Lockfile and settings handling for shed.
"""

from .lockfile import LOCKFILE_NAME, Lockfile
from .settings import ShedSettings, load_settings

__all__ = [
    "Lockfile",
    "LOCKFILE_NAME",
    "ShedSettings",
    "load_settings",
]
