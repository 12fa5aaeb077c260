"""
File system helpers for the lockfile and the tool cache.

- ``atomic_write``: lockfile writes never leave a half-written file
- ``safe_rmtree``: cache deletions are confined to the cache root
- ``temporary_directory``: build scratch space next to the cache entry
- ``make_executable``: mark build outputs runnable
"""

import os
import shutil
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

from shed.core.exceptions import ShedError

PathLike = Union[str, Path]


def _read_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# os.umask can only be read by setting it, so do it once while importing
_UMASK = _read_umask()


class FilesystemError(ShedError):
    """Raised when a file system operation fails."""

    pass


def is_relative_to(path: Path, parent: Path) -> bool:
    """Return True if ``path`` is ``parent`` or lies below it."""
    try:
        path.relative_to(parent)
    except ValueError:
        return False
    return True


def atomic_write(file_path: PathLike, content: Union[str, bytes], encoding: str = "utf-8") -> None:
    """
    Replace ``file_path`` with ``content`` in a single rename.

    The data goes to a hidden sibling file first, so readers see either the
    old content or the new content. On failure the sibling is removed and
    the original file is left untouched.

    An existing file keeps its permission bits. A new file gets the mode a
    plain ``open()`` would have given it.

    Args:
        file_path: Destination file; parent directories are created
        content: Text (written with ``\\n`` line endings) or bytes
        encoding: Encoding for text content

    Example:
        >>> atomic_write('shed.lock', 'github.com/cszatmary/go-fish v0.1.0\\n')
    """
    target = Path(file_path)
    target.parent.mkdir(parents=True, exist_ok=True)

    try:
        file_mode = stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        file_mode = 0o666 & ~_UMASK

    fd, staging_name = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )
    staging = Path(staging_name)
    mode, data = ("wb", content) if isinstance(content, bytes) else ("w", content)

    try:
        if mode == "wb":
            with open(fd, mode) as f:
                f.write(data)
        else:
            with open(fd, mode, encoding=encoding, newline="\n") as f:
                f.write(data)
        os.chmod(staging, file_mode)
        staging.replace(target)
    except BaseException:
        staging.unlink(missing_ok=True)
        raise


def _clear_readonly(func, path, exc_info):
    # Windows refuses to delete read-only files
    os.chmod(path, stat.S_IWRITE)
    func(path)


def safe_rmtree(path: PathLike, require_prefix: Optional[PathLike] = None) -> None:
    """
    Recursively delete the directory ``path``.

    A missing path is not an error.

    Args:
        path: Directory to delete
        require_prefix: Refuse to delete anything outside this directory

    Raises:
        ValueError: If ``path`` resolves outside ``require_prefix``
        FilesystemError: If ``path`` is not a directory or deletion fails
    """
    victim = Path(path).resolve()

    if require_prefix is not None:
        boundary = Path(require_prefix).resolve()
        if not is_relative_to(victim, boundary):
            raise ValueError(f"Refusing to delete {victim}: outside of {boundary}")

    if not victim.exists():
        return
    if not victim.is_dir():
        raise FilesystemError(f"Not a directory: {victim}")

    try:
        shutil.rmtree(victim, onerror=_clear_readonly if os.name == "nt" else None)
    except OSError as e:
        raise FilesystemError(f"Failed to remove {victim}: {e}") from e


def make_executable(path: PathLike) -> None:
    """Add execute permission for user, group and others."""
    path = Path(path)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@contextmanager
def temporary_directory(parent: PathLike, prefix: str = "shed_"):
    """
    Yield a fresh directory under ``parent`` and delete it afterwards.

    Keeping scratch space on the same file system as the cache lets
    finished builds be moved into place with a rename.
    """
    parent = Path(parent)
    parent.mkdir(parents=True, exist_ok=True)
    scratch = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
    try:
        yield scratch
    finally:
        shutil.rmtree(scratch, ignore_errors=True)
