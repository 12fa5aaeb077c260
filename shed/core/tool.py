"""
Tool value type and tool spec parsing.

A tool is identified by its Go import path and pinned to a canonical
version. Users usually refer to tools by their short name (the binary
name ``go install`` produces), e.g. ``golangci-lint`` for
``github.com/golangci/golangci-lint/cmd/golangci-lint``.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

# Sentinel ref that requests removal of a tool.
REF_NONE = "none"
# Sentinel ref that requests the latest available version.
REF_LATEST = "latest"

_PATH_CHARS = re.compile(r"^[A-Za-z0-9\-._~/]+$")
_MAJOR_VERSION_SUFFIX = re.compile(r"^v[0-9]+$")


def short_name(import_path: str) -> str:
    """
    Derive the short name of an import path.

    The short name is the last path segment, unless that segment is a major
    version suffix such as ``v2``, in which case the segment before it is
    used.

    Example:
        >>> short_name("github.com/cszatmary/go-fish")
        'go-fish'
        >>> short_name("example.org/x/tool/v2")
        'tool'
    """
    parts = import_path.rstrip("/").split("/")
    name = parts[-1]
    if len(parts) > 1 and _MAJOR_VERSION_SUFFIX.match(name):
        name = parts[-2]
    return name


def validate_import_path(import_path: str) -> Optional[str]:
    """
    Check that ``import_path`` looks like a Go import path.

    Returns:
        None if the path is valid, otherwise a description of the problem
    """
    if not import_path:
        return "empty import path"
    if not _PATH_CHARS.match(import_path):
        return "import path contains invalid characters"
    if import_path.startswith("/") or import_path.endswith("/"):
        return "import path has leading or trailing slash"
    segments = import_path.split("/")
    for segment in segments:
        if segment in ("", ".", ".."):
            return f"invalid path element {segment!r}"
    if "." not in segments[0]:
        return f"missing dot in first path element {segments[0]!r}"
    return None


def is_valid_import_path(import_path: str) -> bool:
    """Return True if ``import_path`` is a syntactically valid import path."""
    return validate_import_path(import_path) is None


def parse_spec(spec: str) -> Tuple[str, str]:
    """
    Split a tool spec of the form ``name[@ref]``.

    Example:
        >>> parse_spec("golangci-lint@v1.33.0")
        ('golangci-lint', 'v1.33.0')
        >>> parse_spec("github.com/cszatmary/go-fish")
        ('github.com/cszatmary/go-fish', '')
    """
    name, _, ref = spec.strip().partition("@")
    return name, ref


@dataclass(frozen=True, order=True)
class Tool:
    """
    A pinned tool.

    Attributes:
        import_path: Go import path of the tool's main package
        version: Canonical version returned by the builder
    """

    import_path: str
    version: str = ""

    @property
    def name(self) -> str:
        """Short name of the tool."""
        return short_name(self.import_path)

    def __str__(self) -> str:
        if self.version:
            return f"{self.import_path}@{self.version}"
        return self.import_path


def escape_path(path: str) -> str:
    """
    Escape a module path or version for case-insensitive storage.

    Upper-case letters are replaced by '!' followed by the lower-case letter,
    the same scheme the Go module proxy and module cache use.

    Example:
        >>> escape_path("github.com/Shopify/ejson")
        'github.com/!shopify/ejson'
    """
    return "".join(f"!{c.lower()}" if c.isupper() else c for c in path)
