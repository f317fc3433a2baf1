"""Ordered filesystem operations for project generation.

Generators describe what they want on disk as a list of small operation
objects; ``Materializer.apply`` executes them strictly in order, one at a
time, and stops at the first failure, surfacing the failing operation.
Paths inside operations are relative to the materializer's root.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

from .errors import MaterializationError, PathConflict


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EnsureDir:
    """Create a directory (and parents) if missing."""

    path: str | Path


@dataclass(frozen=True)
class WriteFile:
    """Write *content* to *path*.  Fails with ``PathConflict`` if the file
    exists and ``overwrite`` is false."""

    path: str | Path
    content: str
    overwrite: bool = False


@dataclass(frozen=True)
class AppendToFile:
    """Append *content* to *path*, creating it if absent."""

    path: str | Path
    content: str


@dataclass(frozen=True)
class MoveTree:
    """Move every entry of *src* into *dst*, skipping names in *excluding*.

    An entry that already exists in *dst* is a ``PathConflict``; files placed
    earlier in the run are never replaced by a move.
    """

    src: str | Path
    dst: str | Path
    excluding: frozenset[str] = field(default_factory=frozenset)


Operation = EnsureDir | WriteFile | AppendToFile | MoveTree


# ---------------------------------------------------------------------------
# Materializer
# ---------------------------------------------------------------------------


class Materializer:
    """Applies filesystem operations under a project root."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.written: list[Path] = []

    def resolve(self, path: str | Path) -> Path:
        """Absolute location of *path* (relative paths hang off the root)."""
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate

    async def apply(self, operations: Iterable[Operation]) -> list[Path]:
        """Apply *operations* in order; return the paths they touched.

        Raises:
            PathConflict: A write without ``overwrite`` or a move would
                replace an existing path.
            MaterializationError: Any other filesystem failure.
        """
        touched: list[Path] = []
        for operation in operations:
            try:
                paths = await asyncio.to_thread(self._apply_one, operation)
            except PathConflict as exc:
                if exc.operation is None:
                    exc.operation = operation
                raise
            except OSError as exc:
                raise MaterializationError(operation, exc) from exc
            touched.extend(paths)
            self.written.extend(paths)
        return touched

    def _apply_one(self, operation: Operation) -> list[Path]:
        if isinstance(operation, EnsureDir):
            target = self.resolve(operation.path)
            target.mkdir(parents=True, exist_ok=True)
            return []

        if isinstance(operation, WriteFile):
            target = self.resolve(operation.path)
            if target.exists() and not operation.overwrite:
                raise PathConflict(target, operation)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(operation.content, encoding="utf-8")
            return [target]

        if isinstance(operation, AppendToFile):
            target = self.resolve(operation.path)
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("a", encoding="utf-8") as handle:
                handle.write(operation.content)
            return [target]

        if isinstance(operation, MoveTree):
            return _move_tree(
                self.resolve(operation.src),
                self.resolve(operation.dst),
                operation.excluding,
                operation,
            )

        raise TypeError(f"Unknown filesystem operation: {operation!r}")


def _move_tree(
    src: Path, dst: Path, excluding: frozenset[str], operation: MoveTree
) -> list[Path]:
    """Move the entries of *src* into *dst* (checks every entry before moving any)."""
    entries = sorted(p for p in src.iterdir() if p.name not in excluding)
    for entry in entries:
        if (dst / entry.name).exists():
            raise PathConflict(dst / entry.name, operation)

    dst.mkdir(parents=True, exist_ok=True)
    moved: list[Path] = []
    for entry in entries:
        destination = dst / entry.name
        shutil.move(str(entry), str(destination))
        moved.append(destination)
    return moved


# ---------------------------------------------------------------------------
# Scoped temporary workspace
# ---------------------------------------------------------------------------


@asynccontextmanager
async def temporary_workspace(parent: str | Path, prefix: str) -> AsyncIterator[Path]:
    """Create a temporary directory under *parent*; remove it on exit.

    Cleanup runs on success and on failure alike, so a failed scaffolding
    CLI never leaves a stray sibling directory behind.
    """
    workspace = Path(
        await asyncio.to_thread(tempfile.mkdtemp, prefix=prefix, dir=str(parent))
    )
    try:
        yield workspace
    finally:
        await asyncio.to_thread(shutil.rmtree, workspace, True)
