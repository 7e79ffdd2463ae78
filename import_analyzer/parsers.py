"""
Parser backends that turn JavaScript/TypeScript source into an AST.

Two interchangeable backends are available:

* ``tree-sitter`` — native tree-sitter grammars (javascript, typescript, tsx).
  Produces a concrete syntax tree of :class:`tree_sitter.Node` objects.
* ``esprima`` — the esprima reference grammar. Produces an ESTree-shaped AST.

A backend is built once per analyzer by :func:`setup_parser`; the grammar
packages are only imported at that point.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .package import PackageDescriptor, PARSER_ESPRIMA, PARSER_TREE_SITTER

logger = logging.getLogger(__name__)

# Options every backend starts from; package options are merged on top.
DEFAULT_PARSE_OPTIONS: dict = {
    "dynamic_import": True,
    "decorators": True,
}

_TREE_SITTER_SYNTAXES = ("javascript", "typescript", "tsx")

# Grammar picked per file when no "syntax" option pins one.
EXTENSION_TO_SYNTAX: dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

# Options esprima.parseModule understands; everything else is ours.
_ESPRIMA_OPTION_KEYS = frozenset({"jsx", "tolerant", "range", "loc", "comment", "tokens"})

SUPPORTED_ESPRIMA_VERSIONS = (4,)


class ParserSetupError(RuntimeError):
    """Raised when no parser can be built for the configured backend."""


class ParseSyntaxError(SyntaxError):
    """Raised by a backend when the source text is not valid syntax."""


@dataclass
class SourceTree:
    """A tree-sitter parse result together with the bytes it was parsed from."""
    tree: object
    source: bytes

    @property
    def root_node(self):
        return self.tree.root_node


class ParserBackend:
    """Base class: ``parse(source, path)`` returns the backend's AST."""

    kind: str = ""

    def __init__(self, options: dict) -> None:
        self.options = options

    def parse(self, source: str, path: Optional[str] = None):
        raise NotImplementedError


# ---------------------------------------------------------------------------
# tree-sitter
# ---------------------------------------------------------------------------

def _get_lang_func(syntax: str):
    """Return the tree-sitter language() function for *syntax*."""
    if syntax == "javascript":
        import tree_sitter_javascript as m  # type: ignore
        return m.language
    if syntax == "typescript":
        import tree_sitter_typescript as m  # type: ignore
        return m.language_typescript
    if syntax == "tsx":
        import tree_sitter_typescript as m  # type: ignore
        return m.language_tsx
    raise ParserSetupError(
        f"Unknown tree-sitter syntax {syntax!r}; expected one of: {_TREE_SITTER_SYNTAXES}"
    )


def _iter_nodes(root):
    """Yield *root* and all of its descendants in pre-order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


class TreeSitterBackend(ParserBackend):
    """
    Parses with a native tree-sitter grammar.

    The ``syntax`` option pins one grammar for every file. Without it the
    grammar follows the file extension (``.ts`` -> typescript, ``.tsx`` ->
    tsx, anything else -> javascript).
    """

    kind = PARSER_TREE_SITTER

    def __init__(self, options: dict) -> None:
        super().__init__(options)
        self.syntax: Optional[str] = options.get("syntax")
        self._parsers: dict = {}
        # fail at setup, not on the first file, if the grammar is missing
        self._get_parser(self.syntax or "javascript")

    def syntax_for(self, path: Optional[str]) -> str:
        """Return the grammar used for *path*."""
        if self.syntax:
            return self.syntax
        if path:
            ext = os.path.splitext(path)[1].lower()
            return EXTENSION_TO_SYNTAX.get(ext, "javascript")
        return "javascript"

    def _get_parser(self, syntax: str):
        """Return a cached parser for *syntax*, creating it on first use."""
        if syntax in self._parsers:
            return self._parsers[syntax]
        import tree_sitter as ts  # type: ignore

        parser = ts.Parser(ts.Language(_get_lang_func(syntax)()))
        self._parsers[syntax] = parser
        logger.debug("Created tree-sitter %s parser", syntax)
        return parser

    def parse(self, source: str, path: Optional[str] = None) -> SourceTree:
        source_bytes = source.encode("utf-8")
        tree = self._get_parser(self.syntax_for(path)).parse(source_bytes)
        root = tree.root_node
        if root.has_error:
            raise ParseSyntaxError(self._describe_error(root))
        if not (self.options.get("dynamic_import") and self.options.get("decorators")):
            self._check_disabled_syntax(root)
        return SourceTree(tree=tree, source=source_bytes)

    @staticmethod
    def _describe_error(root) -> str:
        for node in _iter_nodes(root):
            if node.type == "ERROR" or node.is_missing:
                row, col = node.start_point
                return f"Line {row + 1}: Unexpected token at column {col + 1}"
        return "Unexpected token"

    def _check_disabled_syntax(self, root) -> None:
        allow_import = self.options.get("dynamic_import")
        allow_decorators = self.options.get("decorators")
        for node in _iter_nodes(root):
            if not allow_decorators and node.type == "decorator":
                row = node.start_point[0]
                raise ParseSyntaxError(f"Line {row + 1}: Decorators are not enabled")
            if not allow_import and node.type == "call_expression":
                func = node.child_by_field_name("function")
                if func is not None and func.type == "import":
                    row = node.start_point[0]
                    raise ParseSyntaxError(f"Line {row + 1}: Dynamic import is not enabled")


# ---------------------------------------------------------------------------
# esprima
# ---------------------------------------------------------------------------

class EsprimaBackend(ParserBackend):
    """Parses with the esprima reference grammar (module goal)."""

    kind = PARSER_ESPRIMA

    def __init__(self, options: dict) -> None:
        super().__init__(options)
        import esprima  # type: ignore
        from esprima.error_handler import Error as EsprimaError  # type: ignore

        self._esprima = esprima
        self._error_cls = EsprimaError
        self._esprima_options = {
            k: v for k, v in options.items() if k in _ESPRIMA_OPTION_KEYS
        }

    def parse(self, source: str, path: Optional[str] = None):
        try:
            return self._esprima.parseModule(source, self._esprima_options)
        except self._error_cls as exc:
            raise ParseSyntaxError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def merge_options(package: PackageDescriptor) -> dict:
    """Return the parser defaults overlaid with the package's own options."""
    options = dict(DEFAULT_PARSE_OPTIONS)
    options.update(package.parser_options or {})
    return options


def setup_parser(package: PackageDescriptor) -> ParserBackend:
    """
    Build the parser backend selected by *package*.

    Raises
    ------
    ParserSetupError
        If the esprima major version is not supported, or the grammar
        cannot be loaded.
    """
    options = merge_options(package)

    if package.use_esprima:
        version = package.esprima_major_version
        if version not in SUPPORTED_ESPRIMA_VERSIONS:
            raise ParserSetupError(
                f"don't know how to setup a parser for esprima version {version} "
                f"(used by {package.name})"
            )
        logger.info("Using esprima %d parser for %s", version, package.name)
        return EsprimaBackend(options)

    logger.info("Using tree-sitter parser for %s", package.name)
    return TreeSitterBackend(options)
