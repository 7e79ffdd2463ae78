"""
Analyzer — discovers and maintains the module imports of a source tree.

Each build applies a patch (one operation per changed path) to the per-file
import store:

  unlink  -- forget the file's imports, remove its mirrored copy
  rmdir   -- remove the mirrored directory
  mkdir   -- create the mirrored directory
  change  -- remove the mirrored copy, then behave as create
  create  -- parse the file, store its imports, mirror it

Only files with a tracked extension are parsed. Unchanged import lists leave
the store untouched, so rebuilding an unchanged file costs one parse and no
recomputation of :attr:`ImportAnalyzer.imports`.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .extractors import extract_imports
from .mirror import TreeMirror
from .models import Import
from .package import PackageDescriptor
from .parsers import ParserBackend, ParseSyntaxError, setup_parser
from .store import AggregateView, ImportStore
from .tree_diff import (
    CHANGE,
    MKDIR,
    OPERATIONS,
    RMDIR,
    UNLINK,
    PatchOperation,
    TreeSnapshot,
    calculate_patch,
)

logger = logging.getLogger(__name__)

STATE_UNINITIALIZED = "uninitialized"
STATE_READY = "ready"


@dataclass
class BuildStats:
    """Summary of one build."""
    operations: int = 0
    files_parsed: int = 0
    syntax_errors: int = 0
    import_count: int = 0
    elapsed_seconds: float = 0.0


class ImportAnalyzer:
    """
    Tracks the imports of every source file in a package's tree.

    Parameters
    ----------
    package:
        The owning :class:`PackageDescriptor`.
    input_root:
        Directory the patch paths are relative to. Defaults to
        ``package.root``.
    output_root:
        Directory input files are mirrored into. When None, builds only
        analyze and nothing is mirrored unless a mirror is passed to
        :meth:`run_build`. Must not be *input_root* or lie inside it.

    Raises
    ------
    ValueError
        If *output_root* is inside *input_root*.
    """

    def __init__(
        self,
        package: PackageDescriptor,
        input_root: Optional[str] = None,
        output_root: Optional[str] = None,
    ) -> None:
        self.package = package
        self.input_root = os.path.abspath(input_root or package.root)
        self.output_root = os.path.abspath(output_root) if output_root else None
        if self.output_root is not None and _is_within(self.output_root, self.input_root):
            raise ValueError(
                f"Output directory {self.output_root} must not be inside the "
                f"input directory {self.input_root}"
            )
        self.store = ImportStore()
        self._view = AggregateView(self.store)
        self._backend: Optional[ParserBackend] = None
        self._previous_tree = TreeSnapshot()
        self._syntax_errors = 0
        self._files_parsed = 0

    # ------------------------------------------------------------------
    # Parser setup
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        return STATE_READY if self._backend is not None else STATE_UNINITIALIZED

    def setup_parser(self) -> ParserBackend:
        """Build the parser backend on first use and return it."""
        if self._backend is None:
            self._backend = setup_parser(self.package)
        return self._backend

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def imports(self) -> tuple[Import, ...]:
        """Every import of every tracked file, in store order."""
        return self._view.get()

    @property
    def view(self) -> AggregateView:
        return self._view

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    def build(self) -> BuildStats:
        """
        Diff the input tree against the previous build and apply the patch.

        Mirrors into ``output_root`` when one was configured. If the build
        fails the analyzer is reset, so the next build starts from an empty
        tree and picks up every file again.
        """
        current = TreeSnapshot.from_directory(self.input_root)
        patch = calculate_patch(self._previous_tree, current)
        self._previous_tree = current
        mirror = None
        if self.output_root is not None:
            mirror = TreeMirror(self.input_root, self.output_root)
        try:
            return self.run_build(patch, mirror=mirror)
        except Exception:
            logger.warning("Build failed; discarding tracked imports for %s", self.package.name)
            self.reset()
            raise

    def reset(self) -> None:
        """Forget all tracked files and the mirrored output."""
        self.store = ImportStore()
        self._view = AggregateView(self.store)
        self._previous_tree = TreeSnapshot()
        if self.output_root is not None and os.path.isdir(self.output_root):
            shutil.rmtree(self.output_root)

    def run_build(
        self,
        patch: Iterable[PatchOperation],
        read_source: Optional[Callable[[str], str]] = None,
        mirror: Optional[TreeMirror] = None,
    ) -> BuildStats:
        """
        Apply *patch* in order.

        Parameters
        ----------
        patch:
            ``(operation, relative_path)`` pairs.
        read_source:
            Returns the source text for a relative path. Defaults to
            reading the file under ``input_root`` as UTF-8, with
            undecodable bytes replaced.
        mirror:
            Output-tree collaborator; when None the mirroring half of each
            operation is skipped.

        Raises
        ------
        ParserSetupError
            On the first build, if the parser cannot be set up.
        ImportArgumentError
            If a file calls import() with an unsupported argument.
        ValueError
            If the patch holds an unknown operation; nothing is applied.
        """
        start_time = time.time()
        patch = list(patch)
        unknown = sorted({op for op, _ in patch if op not in OPERATIONS})
        if unknown:
            raise ValueError(f"Unknown patch operation(s): {', '.join(unknown)}")
        self.setup_parser()
        read = read_source or self._read_source
        self._syntax_errors = 0
        self._files_parsed = 0
        count = 0

        for operation, rel_path in patch:
            count += 1
            if operation == UNLINK:
                if self.package.matches_extension(rel_path):
                    self.remove_imports(rel_path)
                if mirror is not None:
                    mirror.unlink(rel_path)
            elif operation == RMDIR:
                if mirror is not None:
                    mirror.rmdir(rel_path)
            elif operation == MKDIR:
                if mirror is not None:
                    mirror.mkdir(rel_path)
            else:  # CHANGE or CREATE
                if operation == CHANGE and mirror is not None:
                    mirror.remove(rel_path)
                if self.package.matches_extension(rel_path):
                    self.update_imports(rel_path, read(rel_path))
                if mirror is not None:
                    mirror.link(rel_path)

        stats = BuildStats(
            operations=count,
            files_parsed=self._files_parsed,
            syntax_errors=self._syntax_errors,
            import_count=len(self.imports),
            elapsed_seconds=round(time.time() - start_time, 3),
        )
        logger.info(
            "Build complete: %d operations, %d files parsed, %d imports in %.2fs",
            stats.operations,
            stats.files_parsed,
            stats.import_count,
            stats.elapsed_seconds,
        )
        return stats

    # ------------------------------------------------------------------
    # Single-file operations
    # ------------------------------------------------------------------

    def update_imports(self, rel_path: str, source: str) -> bool:
        """
        Re-extract the imports of *rel_path* from *source*.

        Returns True if the stored imports changed.
        """
        logger.debug("Updating imports for %s, %d", rel_path, len(source))
        new_imports = self.parse_imports(rel_path, source)
        return self.store.upsert(rel_path, new_imports)

    def remove_imports(self, rel_path: str) -> bool:
        """Forget *rel_path*. Returns True if that dropped any imports."""
        logger.debug("Removing imports for %s", rel_path)
        return self.store.evict(rel_path)

    def parse_imports(self, rel_path: str, source: str) -> list[Import]:
        """
        Parse *source* and return its imports.

        A file that is not valid syntax has no imports until it is fixed.
        """
        backend = self.setup_parser()
        self._files_parsed += 1
        try:
            ast = backend.parse(source, rel_path)
        except ParseSyntaxError as exc:
            logger.debug("Ignoring an unparseable file %s: %s", rel_path, exc)
            self._syntax_errors += 1
            return []
        return extract_imports(rel_path, ast, backend.kind, self.package)

    def _read_source(self, rel_path: str) -> str:
        path = os.path.join(self.input_root, rel_path)
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            return fh.read()


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)
