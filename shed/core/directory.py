"""
Directory layout management for shed.

This module resolves the platform-specific user cache and config
directories and creates the cache directory structure on first use.

Directory Structure:
    Tool cache (~/.cache/shed/, ~/Library/Caches/shed/ or %LOCALAPPDATA%\\shed\\):
        - tools/   : Built executables, one directory per import path/version/platform
        - lock/    : Cross-process build lock files
        - tmp/     : Scratch directories for in-progress builds

    Project (any ancestor of the working directory):
        - shed.lock : Pinned tools for the project
"""

import os
import sys
from pathlib import Path

from shed.core.exceptions import ShedError

CACHE_SUBDIRS = ("tools", "lock", "tmp")


class DirectoryError(ShedError):
    """Base exception for directory-related errors."""

    pass


class DirectoryCreationError(DirectoryError):
    """Raised when directory creation fails."""

    pass


def _user_base_dir(windows_var: str, xdg_var: str, macos_subdir: str, xdg_default: str) -> Path:
    if os.name == "nt":
        base = os.environ.get(windows_var)
        if not base:
            raise DirectoryError(
                f"{windows_var} environment variable is not set. "
                "Cannot determine user directory."
            )
        return Path(base)
    if sys.platform == "darwin":
        return Path.home() / "Library" / macos_subdir
    xdg = os.environ.get(xdg_var)
    if xdg:
        return Path(xdg)
    return Path.home() / xdg_default


def get_global_cache_dir() -> Path:
    """
    Get the platform-specific user cache directory for shed.

    Returns:
        Path: The cache directory path.
            - Windows: %LOCALAPPDATA%\\shed
            - macOS: ~/Library/Caches/shed
            - Linux: $XDG_CACHE_HOME/shed or ~/.cache/shed

    Example:
        >>> cache_dir = get_global_cache_dir()
        >>> print(cache_dir)
        /home/user/.cache/shed  # on Linux
    """
    return _user_base_dir("LOCALAPPDATA", "XDG_CACHE_HOME", "Caches", ".cache") / "shed"


def get_user_config_dir() -> Path:
    """
    Get the platform-specific user config directory for shed.

    Returns:
        Path: The config directory path.
            - Windows: %APPDATA%\\shed
            - macOS: ~/Library/Application Support/shed
            - Linux: $XDG_CONFIG_HOME/shed or ~/.config/shed
    """
    return (
        _user_base_dir("APPDATA", "XDG_CONFIG_HOME", "Application Support", ".config")
        / "shed"
    )


def verify_directory_writable(path: Path) -> bool:
    """
    Verify that a directory exists and is writable.

    Args:
        path: Directory path to verify.

    Returns:
        bool: True if directory exists and is writable, False otherwise.
    """
    if not path.is_dir():
        return False

    try:
        test_file = path / ".write_test"
        test_file.touch()
        test_file.unlink()
        return True
    except OSError:
        return False


def ensure_cache_structure(root: Path) -> Path:
    """
    Create the cache directory structure if it doesn't exist.

    Args:
        root: Cache root directory.

    Returns:
        Path: The cache root.

    Raises:
        DirectoryCreationError: If a directory cannot be created or the
            root is not writable.
    """
    try:
        root.mkdir(parents=True, exist_ok=True)
        for subdir in CACHE_SUBDIRS:
            (root / subdir).mkdir(exist_ok=True)
    except OSError as e:
        raise DirectoryCreationError(
            f"Failed to create cache directory at {root}: {e}"
        ) from e

    if not verify_directory_writable(root):
        raise DirectoryCreationError(
            f"Cache directory at {root} is not writable. "
            "Please check directory permissions."
        )

    return root
