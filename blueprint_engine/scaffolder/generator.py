"""Main generation orchestrator.

Takes a ``GenerationPlan`` and materialises it on a ``WriteTarget`` with
all-or-nothing semantics.  Every directory created and every file written is
appended to the run's undo log; on any failure the log is replayed in
reverse so that the target ends up exactly as it was before the run.

State machine::

    planning -> writing -> committed
                writing -> rolling_back -> rolled_back | rollback_failed
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional

from ..errors import ConflictError, RollbackError, WriteError
from ..registry.models import HookSpec
from .planner import GenerationPlan
from .targets import FileSnapshot, MemoryTarget, WriteTarget

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# State and result
# ---------------------------------------------------------------------------


class GenerationState(str, Enum):
    PLANNING = "planning"
    WRITING = "writing"
    COMMITTED = "committed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a committed generation.

    ``paths`` are relative to ``root``.  In memory mode ``files`` holds a
    read-only snapshot of the virtual tree; in disk mode it is empty.
    """

    blueprint_id: str
    status: GenerationState
    mode: str
    root: str
    paths: tuple[str, ...] = ()
    files: Mapping[str, str] = field(default_factory=dict)
    dependencies: tuple[str, ...] = ()
    hooks: tuple[HookSpec, ...] = ()
    duration: float = 0.0

    @property
    def file_count(self) -> int:
        return len(self.paths)

    def __len__(self) -> int:
        return len(self.paths)


@dataclass
class _UndoEntry:
    kind: str  # "file" or "dir"
    path: str
    snapshot: Optional[FileSnapshot] = None


# ---------------------------------------------------------------------------
# Transaction (undo log)
# ---------------------------------------------------------------------------


class GenerationTransaction:
    """Per-run undo log and state machine over one target."""

    def __init__(self, target: WriteTarget) -> None:
        self.target = target
        self.state = GenerationState.PLANNING
        self.history: list[GenerationState] = [GenerationState.PLANNING]
        self._undo: list[_UndoEntry] = []

    def _enter(self, state: GenerationState) -> None:
        self.state = state
        self.history.append(state)

    def begin(self) -> None:
        self._enter(GenerationState.WRITING)

    def commit(self) -> None:
        self._enter(GenerationState.COMMITTED)

    def created_dir(self, path: str) -> None:
        self._undo.append(_UndoEntry("dir", path))

    def wrote_file(self, path: str, snapshot: Optional[FileSnapshot] = None) -> None:
        self._undo.append(_UndoEntry("file", path, snapshot))

    @property
    def written(self) -> list[str]:
        return [entry.path for entry in self._undo if entry.kind == "file"]

    @property
    def created_dirs(self) -> list[str]:
        return [entry.path for entry in self._undo if entry.kind == "dir"]

    def rollback(
        self,
        original: Optional[BaseException] = None,
        partial: Optional[str] = None,
        partial_snapshot: Optional[FileSnapshot] = None,
    ) -> list[str]:
        """Undo every recorded change; return the undone paths.

        *partial* names a file whose write was interrupted; it is discarded
        (or restored from *partial_snapshot*) before the undo log is replayed.

        Raises:
            RollbackError: At least one step could not be verified; lists
                every path left in an indeterminate state.
        """
        self._enter(GenerationState.ROLLING_BACK)
        undone: list[str] = []
        failures: list[str] = []
        indeterminate: list[str] = []

        steps: list[_UndoEntry] = []
        if partial is not None:
            steps.append(_UndoEntry("partial", partial, partial_snapshot))
        steps.extend(entry for entry in reversed(self._undo) if entry.kind == "file")
        steps.extend(entry for entry in reversed(self._undo) if entry.kind == "dir")

        for entry in steps:
            try:
                self._undo_step(entry)
            except OSError as exc:
                where = self.target.describe(entry.path)
                failures.append(f"{where}: {exc}")
                indeterminate.append(where)
            else:
                if entry.kind != "partial":
                    undone.append(entry.path)

        self._undo.clear()
        if failures:
            self._enter(GenerationState.ROLLBACK_FAILED)
            logger.error(
                "Rollback failed; %d path(s) left in an indeterminate state: %s",
                len(indeterminate), ", ".join(indeterminate),
            )
            raise RollbackError(indeterminate, failures, original)

        self._enter(GenerationState.ROLLED_BACK)
        logger.warning("Rolled back %d change(s) after: %s", len(undone), original)
        return undone

    def _undo_step(self, entry: _UndoEntry) -> None:
        target = self.target
        if entry.snapshot is not None:
            target.restore(entry.path, entry.snapshot)
            if not target.is_file(entry.path):
                raise OSError(f"restored file {target.describe(entry.path)} is missing")
            return

        if entry.kind == "dir":
            remove, still_there = target.remove_dir, target.is_dir
        else:
            remove, still_there = target.remove_file, target.exists
            if entry.kind == "partial" and not target.exists(entry.path):
                return
        try:
            remove(entry.path)
        except FileNotFoundError:
            pass
        if still_there(entry.path):
            raise OSError(f"{target.describe(entry.path)} still exists after removal")


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class ProjectGenerator:
    """Materialises generation plans on one write target.

    Args:
        target: Where files go (``DiskTarget`` or ``MemoryTarget``).
        overwrite: Allow replacing existing files.  Replaced files are
            snapshotted first and restored if the run rolls back.
    """

    def __init__(self, target: WriteTarget, *, overwrite: bool = False) -> None:
        self.target = target
        self.overwrite = overwrite

    # -- Public API --------------------------------------------------------

    def execute(self, plan: GenerationPlan) -> GenerationResult:
        """Write every planned file, or nothing at all.

        Raises:
            ConflictError: A planned path is occupied (checked before any write).
            WriteError: An I/O failure occurred; all changes were rolled back.
            RollbackError: Undo itself failed; the target is indeterminate.
        """
        started = time.monotonic()
        transaction = GenerationTransaction(self.target)
        snapshots = self._preflight(plan)

        transaction.begin()
        step: Optional[str] = None
        writing: Optional[str] = None
        try:
            for key in self.target.missing_root():
                step = key
                self.target.create_dir(key)
                transaction.created_dir(key)

            for planned in plan:
                step = planned.path
                self._ensure_parents(transaction, planned.path)
                writing = planned.path
                self.target.write_file(planned.path, planned.content, planned.executable)
                transaction.wrote_file(planned.path, snapshots.get(planned.path))
                writing = None
        except OSError as exc:
            undone = transaction.rollback(exc, writing, snapshots.get(writing or ""))
            raise WriteError(self.target.describe(step or ""), exc, undone) from exc
        except Exception as exc:
            transaction.rollback(exc, writing, snapshots.get(writing or ""))
            raise

        transaction.commit()
        files: Mapping[str, str] = (
            self.target.tree() if isinstance(self.target, MemoryTarget) else MappingProxyType({})
        )
        result = GenerationResult(
            blueprint_id=plan.blueprint_id,
            status=transaction.state,
            mode=getattr(self.target, "mode", type(self.target).__name__),
            root=self.target.describe(),
            paths=plan.paths,
            files=files,
            dependencies=plan.dependencies,
            hooks=plan.hooks,
            duration=time.monotonic() - started,
        )
        logger.info(
            "Generated %d file(s) for %s at %s in %.3fs",
            len(result), plan.blueprint_id, result.root, result.duration,
        )
        return result

    async def execute_async(self, plan: GenerationPlan) -> GenerationResult:
        """Run :meth:`execute` in a worker thread."""
        return await asyncio.to_thread(self.execute, plan)

    # -- Internal helpers --------------------------------------------------

    def _preflight(self, plan: GenerationPlan) -> dict[str, FileSnapshot]:
        target = self.target
        if target.exists("") and not target.is_dir(""):
            raise ConflictError(target.describe(), (), "output root exists and is not a directory")

        snapshots: dict[str, FileSnapshot] = {}
        for planned in plan:
            parts = planned.path.split("/")
            for depth in range(1, len(parts)):
                parent = "/".join(parts[:depth])
                if target.exists(parent) and not target.is_dir(parent):
                    raise ConflictError(
                        parent,
                        (planned.source,),
                        f"exists as a file but '{planned.path}' needs it as a directory",
                    )
            if not target.exists(planned.path):
                continue
            if target.is_dir(planned.path):
                raise ConflictError(planned.path, (planned.source,), "a directory exists at this path")
            if not self.overwrite:
                raise ConflictError(
                    planned.path, (planned.source,), "file already exists (overwrite not requested)"
                )
            try:
                snapshots[planned.path] = target.snapshot(planned.path)
            except OSError as exc:
                raise WriteError(target.describe(planned.path), exc) from exc
        return snapshots

    def _ensure_parents(self, transaction: GenerationTransaction, path: str) -> None:
        parts = path.split("/")
        for depth in range(1, len(parts)):
            parent = "/".join(parts[:depth])
            if not self.target.exists(parent):
                self.target.create_dir(parent)
                transaction.created_dir(parent)
