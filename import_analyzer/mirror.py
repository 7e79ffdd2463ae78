"""
Mirrors input files into an output directory, by symlink where possible.
"""

from __future__ import annotations

import logging
import os
import shutil

logger = logging.getLogger(__name__)


class TreeMirror:
    """
    Materialises files from *input_root* at the same relative path under
    *output_root*.

    Parameters
    ----------
    input_root:
        Directory the relative paths are read from.
    output_root:
        Directory the relative paths are written to. Created if absent.
    use_symlinks:
        Link rather than copy. Falls back to copying when the platform
        refuses to create the link.
    """

    def __init__(self, input_root: str, output_root: str, use_symlinks: bool = True) -> None:
        self.input_root = os.path.abspath(input_root)
        self.output_root = os.path.abspath(output_root)
        self.use_symlinks = use_symlinks
        os.makedirs(self.output_root, exist_ok=True)

    def input_path(self, rel_path: str) -> str:
        return os.path.join(self.input_root, rel_path)

    def output_path(self, rel_path: str) -> str:
        return os.path.join(self.output_root, rel_path)

    def link(self, rel_path: str) -> None:
        """Make *rel_path* available in the output tree."""
        src = self.input_path(rel_path)
        dst = self.output_path(rel_path)
        if self.use_symlinks:
            try:
                os.symlink(src, dst)
                return
            except OSError as exc:
                logger.debug("Symlink failed for %s, copying instead: %s", rel_path, exc)
        shutil.copy2(src, dst)

    def unlink(self, rel_path: str) -> None:
        os.unlink(self.output_path(rel_path))

    def remove(self, rel_path: str) -> None:
        """Remove *rel_path* from the output tree if it is there."""
        dst = self.output_path(rel_path)
        if os.path.islink(dst) or os.path.isfile(dst):
            os.unlink(dst)
        elif os.path.isdir(dst):
            shutil.rmtree(dst)

    def rmdir(self, rel_path: str) -> None:
        os.rmdir(self.output_path(rel_path))

    def mkdir(self, rel_path: str) -> None:
        os.mkdir(self.output_path(rel_path))
