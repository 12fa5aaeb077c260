"""
Install sets: reconcile requested tool changes with the lockfile.

An install set maps every import path touched by a command to one
operation:

- ``EnsurePresent(import_path, version)``: build the version if it is not
  cached and pin it in the lockfile.
- ``EnsureAbsent(import_path)``: drop the tool from the lockfile.

Resolution (``resolve_install_set``) starts from an ``EnsurePresent`` for
every tool already in the lockfile, then overlays the operations requested
by explicit ``name[@ref]`` specs. Specs that cannot be resolved are reported
together without stopping the others.

Applying (``InstallSet.apply``) runs all operations on a thread pool. Each
worker writes only to its own result slot; once every operation has
settled, the slots are folded into the lockfile in one pass and the file is
written atomically. Failed or canceled operations leave the lockfile entry
as it was.

Example:
    >>> install_set, errors = resolve_install_set(lockfile, ["golangci-lint@v1.33.0"], cache, path)
    >>> install_set.apply()
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from shed.cache.store import Cache
from shed.config.lockfile import Lockfile
from shed.core.exceptions import (
    AmbiguousNameError,
    CacheError,
    CanceledError,
    DuplicateShortNameError,
    ErrorList,
    InvalidToolError,
    NotFoundError,
    OperationError,
    ResolutionError,
)
from shed.core.tool import REF_NONE, Tool, parse_spec, validate_import_path

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True)
class EnsurePresent:
    """Build ``version`` of the tool if needed and pin it."""

    import_path: str
    version: str

    def __str__(self) -> str:
        return f"install {self.import_path}@{self.version}"


@dataclass(frozen=True)
class EnsureAbsent:
    """Remove the tool from the lockfile."""

    import_path: str
    previous_version: Optional[str] = None

    def __str__(self) -> str:
        return f"remove {self.import_path}"


Operation = Union[EnsurePresent, EnsureAbsent]


@dataclass
class _Slot:
    """Outcome of one operation during apply."""

    operation: Operation
    staged: Optional[Tool] = None
    done: bool = False
    error: Optional[BaseException] = None


class InstallSet:
    """
    Set of per-tool operations computed from a lockfile and requested specs.

    Creating an install set never touches the lockfile; only ``apply`` does.

    Attributes:
        lockfile: Lockfile the operations are applied to
        lockfile_path: Where the lockfile is written after apply
        cache: Cache used to build tools
        max_workers: Number of operations run in parallel
        evict_on_remove: Evict cached executables of removed tools
    """

    def __init__(
        self,
        lockfile: Lockfile,
        lockfile_path: Path,
        cache: Cache,
        operations: Dict[str, Operation],
        max_workers: int = DEFAULT_MAX_WORKERS,
        evict_on_remove: bool = False,
    ):
        self.lockfile = lockfile
        self.lockfile_path = Path(lockfile_path)
        self.cache = cache
        self.max_workers = max(1, max_workers)
        self.evict_on_remove = evict_on_remove
        self._operations = dict(operations)
        self._lock = threading.Lock()

    @property
    def operations(self) -> Dict[str, Operation]:
        """Operations keyed by import path."""
        return dict(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[Operation]:
        for import_path in sorted(self._operations):
            yield self._operations[import_path]

    def __contains__(self, import_path: object) -> bool:
        return import_path in self._operations

    def get(self, import_path: str) -> Optional[Operation]:
        return self._operations.get(import_path)

    def apply(self, cancel_event: Optional[threading.Event] = None) -> None:
        """
        Run every operation and persist the resulting lockfile.

        Args:
            cancel_event: When set, operations that have not finished are
                reported as canceled and left out of the lockfile update.
                Builds already written to the cache are kept.

        Raises:
            ErrorList: If any operation failed or was canceled. The lockfile
                has still been written for every operation that succeeded.
            LockfileError: If the lockfile cannot be written
        """
        if cancel_event is None:
            cancel_event = threading.Event()

        slots = {path: _Slot(op) for path, op in self._operations.items()}
        if slots:
            workers = min(self.max_workers, len(slots))
            logger.debug(f"Applying {len(slots)} operations with {workers} workers")
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="shed") as executor:
                futures = [
                    executor.submit(self._run, slots[path], cancel_event)
                    for path in sorted(slots)
                ]
                for future in futures:
                    future.result()

        errors = self._commit(slots)
        if errors:
            raise ErrorList(errors)

    def _run(self, slot: _Slot, cancel_event: threading.Event) -> None:
        op = slot.operation
        if cancel_event.is_set():
            slot.error = CanceledError(op.import_path)
            return

        try:
            if isinstance(op, EnsurePresent):
                self.cache.install(op.import_path, op.version)
                slot.staged = Tool(op.import_path, op.version)
            elif self.evict_on_remove and op.previous_version:
                self._evict(op)
        except Exception as e:
            logger.debug(f"{op} failed: {e}")
            slot.error = e
            return

        if cancel_event.is_set():
            slot.error = CanceledError(op.import_path)
            return
        slot.done = True

    def _evict(self, op: EnsureAbsent) -> None:
        try:
            self.cache.evict(op.import_path, op.previous_version)
        except (CacheError, OSError) as e:
            logger.warning(f"Failed to evict {op.import_path}@{op.previous_version}: {e}")

    def _commit(self, slots: Dict[str, _Slot]) -> List[OperationError]:
        """Fold completed slots into the lockfile and write it."""
        with self._lock:
            for path in sorted(slots):
                slot = slots[path]
                if slot.done and isinstance(slot.operation, EnsureAbsent):
                    if self.lockfile.remove(path) is not None:
                        logger.info(f"Removed {path}")

            for path in sorted(slots):
                slot = slots[path]
                if not slot.done or slot.staged is None:
                    continue
                try:
                    self.lockfile.put(slot.staged)
                except (InvalidToolError, DuplicateShortNameError) as e:
                    slot.error = e
                    slot.done = False

            self.lockfile.save(self.lockfile_path)

        return [
            OperationError(path, slot.error)
            for path, slot in sorted(slots.items())
            if slot.error is not None
        ]


def resolve_install_set(
    lockfile: Lockfile,
    specs: Sequence[str],
    cache: Cache,
    lockfile_path: Path,
    max_workers: int = DEFAULT_MAX_WORKERS,
    evict_on_remove: bool = False,
) -> Tuple[InstallSet, Optional[ErrorList]]:
    """
    Compute the install set for ``specs`` against ``lockfile``.

    Every tool in the lockfile contributes an ``EnsurePresent`` at its pinned
    version; each spec then replaces the operation for its import path.
    With no specs, the result re-verifies the whole lockfile.

    Args:
        lockfile: Current lockfile (not modified)
        specs: Tool specs of the form ``name[@ref]``; ``ref`` may be empty
            (latest), an explicit version or ``none`` (remove)
        cache: Cache used to resolve refs to canonical versions
        lockfile_path: Where ``apply`` writes the lockfile
        max_workers: Parallelism for resolution and apply
        evict_on_remove: Evict cached executables of removed tools

    Returns:
        Tuple of (install set with every successfully resolved operation,
        ErrorList of failed specs or None)
    """
    operations: Dict[str, Operation] = {
        tool.import_path: EnsurePresent(tool.import_path, tool.version)
        for tool in lockfile
    }
    errors: List[OperationError] = []

    # (spec, import_path, ref) in the order given, so later specs win
    requests: List[Tuple[str, str, str]] = []
    for spec in specs:
        name, ref = parse_spec(spec)
        try:
            import_path = lockfile.get(name).import_path
        except NotFoundError:
            problem = validate_import_path(name)
            if problem is not None:
                errors.append(OperationError(spec, ResolutionError(name, ref, problem)))
                continue
            import_path = name
        except AmbiguousNameError as e:
            errors.append(OperationError(spec, e))
            continue
        requests.append((spec, import_path, ref))

    to_resolve = [(path, ref) for _, path, ref in requests if ref != REF_NONE]
    resolved: Dict[Tuple[str, str], Union[str, Exception]] = {}
    if to_resolve:
        workers = max(1, min(max_workers, len(to_resolve)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="shed-resolve") as executor:
            futures = {key: executor.submit(cache.resolve, *key) for key in set(to_resolve)}
            for key, future in futures.items():
                try:
                    resolved[key] = future.result()
                except ResolutionError as e:
                    resolved[key] = e

    explicit: Dict[str, Operation] = {}
    for spec, import_path, ref in requests:
        if ref == REF_NONE:
            previous = lockfile.tools.get(import_path)
            explicit[import_path] = EnsureAbsent(
                import_path, previous.version if previous else None
            )
            continue

        result = resolved[(import_path, ref)]
        if isinstance(result, Exception):
            errors.append(OperationError(spec, result, import_path=import_path))
            continue
        explicit[import_path] = EnsurePresent(import_path, result)

    operations.update(explicit)

    install_set = InstallSet(
        lockfile,
        lockfile_path,
        cache,
        operations,
        max_workers=max_workers,
        evict_on_remove=evict_on_remove,
    )
    return install_set, ErrorList(errors) if errors else None


__all__ = [
    "InstallSet",
    "EnsurePresent",
    "EnsureAbsent",
    "Operation",
    "resolve_install_set",
]
