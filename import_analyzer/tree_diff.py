"""
Snapshots of a source tree and the patch between two snapshots.

A patch is an ordered list of :class:`PatchOperation`. Removals come first
(files before the directories that held them, deepest first), followed by
additions and changes in sorted path order (directories before their
contents).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import NamedTuple

logger = logging.getLogger(__name__)

UNLINK = "unlink"
RMDIR = "rmdir"
MKDIR = "mkdir"
CHANGE = "change"
CREATE = "create"

OPERATIONS: frozenset[str] = frozenset({UNLINK, RMDIR, MKDIR, CHANGE, CREATE})

_SKIP_DIRS: frozenset[str] = frozenset({
    "node_modules", ".git", ".hg", ".svn", "__pycache__", ".cache",
})


class PatchOperation(NamedTuple):
    """One change to apply: *operation* on the relative *path*."""
    operation: str
    path: str


@dataclass(frozen=True)
class Entry:
    """A file or directory in a snapshot."""
    path: str
    is_dir: bool
    size: int = 0
    mtime: float = 0.0


class TreeSnapshot:
    """The set of entries under a directory at one point in time."""

    def __init__(self, entries: list[Entry] | None = None) -> None:
        self.entries: dict[str, Entry] = {e.path: e for e in entries or []}

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def from_directory(cls, root: str) -> "TreeSnapshot":
        """
        Walk *root* and record every file and directory below it.

        Paths are relative to *root* and use forward slashes.
        """
        entries: list[Entry] = []
        for dirpath, dirnames, filenames in os.walk(root, topdown=True):
            dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
            rel_dir = os.path.relpath(dirpath, root)
            for d in dirnames:
                entries.append(Entry(_join(rel_dir, d), is_dir=True))
            for fname in sorted(filenames):
                abs_path = os.path.join(dirpath, fname)
                try:
                    st = os.stat(abs_path)
                except OSError:
                    # vanished between listing and stat, or a dangling link
                    continue
                entries.append(Entry(_join(rel_dir, fname), False, st.st_size, st.st_mtime))
        return cls(entries)


def _join(rel_dir: str, name: str) -> str:
    if rel_dir in (".", ""):
        return name
    return f"{rel_dir.replace(os.sep, '/')}/{name}"


def calculate_patch(previous: TreeSnapshot, current: TreeSnapshot) -> list[PatchOperation]:
    """Return the operations that turn *previous* into *current*."""
    removals: list[PatchOperation] = []
    for path in sorted(previous.entries, reverse=True):
        old = previous.entries[path]
        new = current.entries.get(path)
        if new is None or new.is_dir != old.is_dir:
            removals.append(PatchOperation(RMDIR if old.is_dir else UNLINK, path))

    additions: list[PatchOperation] = []
    for path in sorted(current.entries):
        new = current.entries[path]
        old = previous.entries.get(path)
        if old is None or old.is_dir != new.is_dir:
            additions.append(PatchOperation(MKDIR if new.is_dir else CREATE, path))
        elif not new.is_dir and (old.size != new.size or old.mtime != new.mtime):
            additions.append(PatchOperation(CHANGE, path))

    patch = removals + additions
    logger.debug("Calculated patch with %d operations", len(patch))
    return patch
