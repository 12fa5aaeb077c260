"""
Centralized exception hierarchy for shed.

This module defines all custom exceptions used across the codebase
to provide clear exception semantics for lookups, cache builds and
multi-operation commands.
"""

from typing import Iterable, Iterator, List, Optional, Tuple


# ============================================================================
# Base Exceptions
# ============================================================================


class ShedError(Exception):
    """Base exception for all shed errors."""

    pass


class ConfigError(ShedError):
    """Raised when settings cannot be loaded or contain invalid values."""

    pass


class CanceledError(ShedError):
    """Raised when an operation was aborted by cancellation."""

    def __init__(self, subject: str = ""):
        self.subject = subject
        msg = "operation canceled"
        if subject:
            msg = f"{subject}: {msg}"
        super().__init__(msg)


# ============================================================================
# Lockfile Exceptions
# ============================================================================


class LockfileError(ShedError):
    """Base exception for lockfile errors."""

    pass


class NotFoundError(LockfileError):
    """Raised when no lockfile entry matches a name or import path."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no tool named {name!r} in lockfile")


class AmbiguousNameError(LockfileError):
    """Raised when a short name matches more than one lockfile entry."""

    def __init__(self, name: str, import_paths: Iterable[str]):
        self.name = name
        self.import_paths = sorted(import_paths)
        super().__init__(
            f"short name {name!r} is ambiguous, matches: {', '.join(self.import_paths)}"
        )


class DuplicateShortNameError(LockfileError):
    """Raised when adding a tool would make a short name ambiguous."""

    def __init__(self, import_path: str, existing_import_path: str, short_name: str):
        self.import_path = import_path
        self.existing_import_path = existing_import_path
        self.short_name = short_name
        super().__init__(
            f"cannot add {import_path}: short name {short_name!r} "
            f"is already used by {existing_import_path}"
        )


class InvalidToolError(LockfileError):
    """Raised when a tool cannot be recorded in a lockfile as given."""

    def __init__(self, import_path: str, version: str, reason: str):
        self.import_path = import_path
        self.version = version
        self.reason = reason
        super().__init__(f"{import_path}: {reason}")


class FormatError(LockfileError):
    """Raised when lockfile text cannot be parsed."""

    def __init__(
        self, message: str, line_number: Optional[int] = None, path: Optional[str] = None
    ):
        self.message = message
        self.line_number = line_number
        self.path = path
        location = ""
        if path is not None:
            location = f"{path}:"
        if line_number is not None:
            location += f"{line_number}:" if path is not None else f"line {line_number}:"
        super().__init__(f"{location} {message}" if location else message)


# ============================================================================
# Cache Exceptions
# ============================================================================


class CacheError(ShedError):
    """Base exception for tool cache errors."""

    pass


class ResolutionError(CacheError):
    """Raised when a version reference cannot be resolved for an import path."""

    def __init__(self, import_path: str, ref: str = "", reason: str = ""):
        self.import_path = import_path
        self.ref = ref
        self.reason = reason
        target = f"{import_path}@{ref}" if ref else import_path
        msg = f"cannot resolve {target}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class BuildError(CacheError):
    """Raised when the builder fails to produce an executable."""

    def __init__(self, import_path: str, version: str, reason: str = ""):
        self.import_path = import_path
        self.version = version
        self.reason = reason
        msg = f"failed to build {import_path}@{version}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ToolNotInstalledError(CacheError):
    """Raised when a pinned tool has no built executable in the cache."""

    def __init__(self, import_path: str, version: str):
        self.import_path = import_path
        self.version = version
        super().__init__(
            f"{import_path}@{version} is not installed, run 'shed install' first"
        )


# ============================================================================
# Aggregate Errors
# ============================================================================


class OperationError:
    """
    A single failed operation: the subject it concerns and why it failed.

    ``import_path`` is set when the subject is a name or spec that was
    matched to a tool, and is used to order errors.
    """

    def __init__(self, subject: str, cause: BaseException, import_path: Optional[str] = None):
        self.subject = subject
        self.cause = cause
        self.import_path = import_path

    @property
    def sort_key(self) -> Tuple[str, str]:
        return (self.import_path or self.subject, self.subject)

    def __str__(self) -> str:
        return f"{self.subject}: {self.cause}"

    def __repr__(self) -> str:
        return f"OperationError({self.subject!r}, {self.cause!r})"


class ErrorList(ShedError):
    """
    Aggregate of independent operation failures.

    Raised (or returned) by commands that run several operations where each
    one may fail on its own. Errors are kept sorted by import path, or by
    subject where no import path is known, so output is reproducible across
    runs.
    """

    def __init__(self, errors: Iterable[OperationError]):
        self.errors: List[OperationError] = sorted(errors, key=lambda e: e.sort_key)
        super().__init__("\n".join(str(e) for e in self.errors))

    def __iter__(self) -> Iterator[OperationError]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def subjects(self) -> List[str]:
        """Return the subjects of all failed operations."""
        return [e.subject for e in self.errors]
