"""
Per-file import store and the aggregate view derived from it.

The store maps each tracked path to the imports found in it. Iteration order
is insertion order of the paths (replacing an entry keeps its position): it is
stable within one analyzer but not sorted.

The aggregate view flattens the store into one sequence and caches it. The
store bumps its ``generation`` on every substantive mutation and the view
recomputes only when the generation it last saw is out of date.
"""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from typing import Iterator, Optional

from .models import Import

logger = logging.getLogger(__name__)


class ImportStore:
    """Ordered mapping of file path to that file's import records."""

    def __init__(self) -> None:
        self._paths: "OrderedDict[str, list[Import]]" = OrderedDict()
        self.generation = 0

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, path: str) -> bool:
        return path in self._paths

    def get(self, path: str) -> Optional[list[Import]]:
        """Return the stored imports for *path*, or None if not tracked."""
        return self._paths.get(path)

    def paths(self) -> list[str]:
        return list(self._paths)

    def entries(self) -> Iterator[list[Import]]:
        """Yield each path's import list in store order."""
        return iter(self._paths.values())

    def upsert(self, path: str, imports: list[Import]) -> bool:
        """
        Store *imports* for *path* unless they equal what is already stored.

        Returns True when the entry was created or replaced.
        """
        if path in self._paths and self._paths[path] == imports:
            return False
        self._paths[path] = imports
        self.generation += 1
        return True

    def evict(self, path: str) -> bool:
        """
        Forget *path*. Safe to call for paths that are not tracked.

        Returns True when the removed entry contributed any imports.
        """
        imports = self._paths.pop(path, None)
        if imports:
            self.generation += 1
            return True
        return False


class AggregateView:
    """
    Lazily flattened view of every import in an :class:`ImportStore`.

    Parameters
    ----------
    store:
        The store to flatten.
    """

    def __init__(self, store: ImportStore) -> None:
        self._store = store
        self._value: tuple[Import, ...] = ()
        self._computed_generation: Optional[int] = None
        self.recompute_count = 0

    @property
    def is_stale(self) -> bool:
        return self._computed_generation != self._store.generation

    def get(self) -> tuple[Import, ...]:
        """Return all imports, recomputing only if the store changed."""
        if self.is_stale:
            self._value = tuple(imp for entry in self._store.entries() for imp in entry)
            self._computed_generation = self._store.generation
            self.recompute_count += 1
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "imports %s",
                    json.dumps([imp.to_dict() for imp in self._value], indent=2),
                )
        return self._value
