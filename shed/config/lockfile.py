"""
Lock file model and serialization for shed.

The lock file (``shed.lock``) records the exact version of every tool a
project uses so that every machine installs an identical toolchain. The
format is deliberately plain and diff-friendly: one ``<import path>
<version>`` pair per line, sorted by import path.

Example:
    >>> from pathlib import Path
    >>> from shed.config.lockfile import Lockfile
    >>> from shed.core.tool import Tool
    >>>
    >>> lf = Lockfile.load(Path('shed.lock'))
    >>> lf.put(Tool('github.com/cszatmary/go-fish', 'v0.1.0'))
    >>> lf.get('go-fish').version
    'v0.1.0'
    >>> lf.save(Path('shed.lock'))
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Union

from shed.core.exceptions import (
    AmbiguousNameError,
    DuplicateShortNameError,
    FormatError,
    InvalidToolError,
    LockfileError,
    NotFoundError,
)
from shed.core.filesystem import atomic_write
from shed.core.tool import Tool, short_name, validate_import_path

logger = logging.getLogger(__name__)

LOCKFILE_NAME = "shed.lock"

HEADER = (
    "# This file is generated by shed. Do not edit it by hand.\n"
    "# Run 'shed install <tool>[@version]' to add or update tools.\n"
)

COMMENT_PREFIX = "#"


class Lockfile:
    """
    Ordered, deduplicated set of pinned tools.

    Tools are keyed by import path and can also be looked up by their short
    name, as long as the short name is unambiguous. Adding a tool whose short
    name is already taken by a different import path is rejected, so every
    short name in a lockfile maps to exactly one tool.

    Attributes:
        tools: Mapping of import path to Tool (unordered; use iteration for
            sorted access)
    """

    def __init__(self, tools: Iterable[Tool] = ()):
        self.tools: Dict[str, Tool] = {}
        self._names: Dict[str, Set[str]] = {}
        for tool in tools:
            self.put(tool)

    def _rebuild_index(self) -> None:
        names: Dict[str, Set[str]] = {}
        for import_path in self.tools:
            names.setdefault(short_name(import_path), set()).add(import_path)
        self._names = names

    def _match(self, name: str) -> str:
        """Return the import path ``name`` refers to."""
        if name in self.tools:
            return name

        matches = self._names.get(name, set())
        if not matches:
            raise NotFoundError(name)
        if len(matches) > 1:
            raise AmbiguousNameError(name, matches)
        return next(iter(matches))

    def put(self, tool: Tool) -> None:
        """
        Insert or replace the entry for ``tool.import_path``.

        Only tools that ``serialize`` can write and ``parse`` can read back are
        accepted: a valid import path and a non-empty version without
        whitespace.

        Raises:
            InvalidToolError: If the import path or version cannot be recorded
            DuplicateShortNameError: If a different import path already uses
                the same short name
        """
        problem = validate_import_path(tool.import_path)
        if problem is None and not tool.version:
            problem = "missing version"
        elif problem is None and any(c.isspace() for c in tool.version):
            problem = f"version {tool.version!r} contains whitespace"
        if problem is not None:
            raise InvalidToolError(tool.import_path, tool.version, problem)

        name = tool.name
        for other in self._names.get(name, ()):
            if other != tool.import_path:
                raise DuplicateShortNameError(tool.import_path, other, name)

        self.tools[tool.import_path] = tool
        self._rebuild_index()

    def get(self, name: str) -> Tool:
        """
        Look up a tool by import path or short name.

        Raises:
            NotFoundError: If no tool matches
            AmbiguousNameError: If the short name matches several tools
        """
        return self.tools[self._match(name)]

    def remove(self, name: str, missing_ok: bool = True) -> Optional[Tool]:
        """
        Remove a tool by import path or short name.

        Args:
            name: Import path or short name
            missing_ok: If True (default), removing an absent tool is a no-op;
                otherwise NotFoundError is raised

        Returns:
            The removed tool, or None if nothing was removed
        """
        try:
            import_path = self._match(name)
        except NotFoundError:
            if missing_ok:
                return None
            raise

        tool = self.tools.pop(import_path)
        self._rebuild_index()
        return tool

    def iter(self) -> Iterator[Tool]:
        """Iterate over tools in ascending import path order."""
        for import_path in sorted(self.tools):
            yield self.tools[import_path]

    def __iter__(self) -> Iterator[Tool]:
        return self.iter()

    def __len__(self) -> int:
        return len(self.tools)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return name in self.tools or name in self._names

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Lockfile):
            return NotImplemented
        return self.tools == other.tools

    def __repr__(self) -> str:
        return f"Lockfile({list(self.iter())!r})"

    def copy(self) -> "Lockfile":
        """Return an independent copy of this lockfile."""
        return Lockfile(self.tools.values())

    def to_list(self) -> List[Tool]:
        """Return all tools sorted by import path."""
        return list(self.iter())

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self) -> str:
        """Render the lockfile in its text format."""
        lines = [f"{tool.import_path} {tool.version}\n" for tool in self.iter()]
        return HEADER + "".join(lines)

    @classmethod
    def parse(cls, data: Union[str, bytes]) -> "Lockfile":
        """
        Parse lockfile text.

        Blank lines and lines starting with '#' are ignored. Every other line
        must contain an import path and a version separated by whitespace.

        Raises:
            FormatError: On malformed lines, invalid or duplicate import paths,
                or ambiguous short names
        """
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise FormatError(f"lockfile is not valid UTF-8: {e}") from e

        lockfile = cls()
        for line_number, raw_line in enumerate(data.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith(COMMENT_PREFIX):
                continue

            fields = line.split()
            if len(fields) != 2:
                raise FormatError(
                    f"expected '<import path> <version>', got {line!r}", line_number
                )

            import_path, version = fields
            if import_path in lockfile.tools:
                raise FormatError(f"duplicate tool {import_path}", line_number)

            try:
                lockfile.put(Tool(import_path, version))
            except (InvalidToolError, DuplicateShortNameError) as e:
                raise FormatError(str(e), line_number) from e

        return lockfile

    @classmethod
    def load(cls, path: Path) -> "Lockfile":
        """
        Load a lockfile from disk.

        A missing file yields an empty lockfile, so projects without a
        lockfile yet can be installed into.

        Raises:
            FormatError: If the file content is malformed
            LockfileError: If the file cannot be read
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"Lockfile not found, starting empty: {path}")
            return cls()

        try:
            data = path.read_bytes()
        except OSError as e:
            raise LockfileError(f"Failed to read lockfile {path}: {e}") from e

        try:
            lockfile = cls.parse(data)
        except FormatError as e:
            raise FormatError(e.message, e.line_number, str(path)) from e

        logger.debug(f"Loaded {len(lockfile)} tools from {path}")
        return lockfile

    def save(self, path: Path) -> None:
        """
        Write the lockfile to disk atomically.

        Raises:
            LockfileError: If the file cannot be written
        """
        try:
            atomic_write(Path(path), self.serialize())
        except OSError as e:
            raise LockfileError(f"Failed to write lockfile {path}: {e}") from e
        logger.debug(f"Saved lockfile with {len(self)} tools: {path}")


__all__ = ["Lockfile", "LOCKFILE_NAME"]
