"""
Package descriptor — the configuration object that owns an analyzer.

Carries the tracked file extensions, the parser backend selection and the
identity stamped onto every import record the analyzer produces.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

PARSER_TREE_SITTER = "tree-sitter"
PARSER_ESPRIMA = "esprima"

SUPPORTED_PARSERS: frozenset[str] = frozenset({PARSER_TREE_SITTER, PARSER_ESPRIMA})

TREE_TYPES: frozenset[str] = frozenset({
    "app",
    "addon",
    "addon-templates",
    "addon-test-support",
    "styles",
    "templates",
    "test",
})

DEFAULT_FILE_EXTENSIONS: tuple[str, ...] = ("js", "mjs", "cjs", "jsx", "ts", "tsx")


@dataclass(frozen=True, eq=False)
class PackageDescriptor:
    """
    Describes the package whose source tree is being analyzed.

    Two descriptors are equal when their :attr:`identity` matches; the
    remaining fields are configuration and take no part in comparison, so
    import records embedding a descriptor compare by package identity only.

    Parameters
    ----------
    name:
        Package name (shown in logs and JSON output).
    root:
        Package root directory.
    file_extensions:
        Extensions (without the leading dot) whose files are parsed.
    parser:
        ``"tree-sitter"`` or ``"esprima"``.
    parser_options:
        Backend-specific options merged over the parser defaults.
    esprima_major_version:
        Major version used to pick the esprima setup strategy.
    tree_type:
        Optional logical tree tag applied to every import record.
    """

    name: str
    root: str = "."
    file_extensions: tuple[str, ...] = DEFAULT_FILE_EXTENSIONS
    parser: str = PARSER_TREE_SITTER
    parser_options: dict = field(default_factory=dict)
    esprima_major_version: int = 4
    tree_type: Optional[str] = None

    def __post_init__(self) -> None:
        if self.parser not in SUPPORTED_PARSERS:
            raise ValueError(
                f"Unknown parser {self.parser!r} for package {self.name}; "
                f"expected one of: {sorted(SUPPORTED_PARSERS)}"
            )
        if self.tree_type is not None and self.tree_type not in TREE_TYPES:
            raise ValueError(
                f"Unknown tree type {self.tree_type!r}; "
                f"expected one of: {sorted(TREE_TYPES)}"
            )
        exts = tuple(e.lstrip(".").lower() for e in self.file_extensions)
        object.__setattr__(self, "file_extensions", exts)

    @property
    def identity(self) -> tuple[str, str]:
        """Stable content identity: package name plus resolved root."""
        return (self.name, os.path.abspath(self.root))

    @property
    def use_esprima(self) -> bool:
        return self.parser == PARSER_ESPRIMA

    def matches_extension(self, path: str) -> bool:
        """Return True if *path* has one of the tracked extensions."""
        ext = os.path.splitext(path)[1][1:].lower()
        return ext in self.file_extensions

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageDescriptor):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __repr__(self) -> str:
        return f"PackageDescriptor(name={self.name!r}, parser={self.parser!r})"
