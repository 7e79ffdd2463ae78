"""
Import extraction — walks a parsed AST and collects its import records.

Each parser backend has its own extractor because the two AST shapes differ
(tree-sitter concrete syntax nodes vs. ESTree nodes), but both produce the
same :class:`~import_analyzer.models.LiteralImport` /
:class:`~import_analyzer.models.TemplateImport` records, in the order the
constructs appear in the source.

Recognised constructs, at any nesting depth:

* ``import ... from 'x'``                     -> static
* ``export { a } from 'x'``                   -> static
* ``import('x')`` / ``import(`x-${y}`)``      -> dynamic
* ``importSync('x')`` (from @embroider/macros) -> static (resolved at build time)
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from .models import Import, LiteralImport, TemplateImport
from .package import PackageDescriptor, PARSER_ESPRIMA, PARSER_TREE_SITTER

# (module, exported name) pairs whose calls are treated as build-time imports
MACRO_IMPORTS: frozenset[tuple[str, str]] = frozenset({
    ("@embroider/macros", "importSync"),
})

_ARGUMENT_ERROR = "import() only accepts string or template-string literals"


class ImportArgumentError(ValueError):
    """Raised when import()/importSync() is called with an unsupported argument."""


# ---------------------------------------------------------------------------
# Escape handling
# ---------------------------------------------------------------------------

_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|[\s\S])")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_LINE_TERMINATORS = frozenset({"\n", "\u2028", "\u2029"})


def _replace_escape(match: re.Match) -> str:
    esc = match.group(1)
    if len(esc) > 1 and esc[0] == "u":
        digits = esc[2:-1] if esc[1] == "{" else esc[1:]
        return chr(int(digits, 16))
    if len(esc) == 3 and esc[0] == "x":
        return chr(int(esc[1:], 16))
    if esc in _LINE_TERMINATORS:
        return ""
    return _SIMPLE_ESCAPES.get(esc, esc)


def cook(raw: str) -> str:
    """Resolve JavaScript escape sequences in the raw text of a literal."""
    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    if "\\" not in text:
        return text
    cooked = _ESCAPE_RE.sub(_replace_escape, text)
    # \uD83D\uDE00 style pairs come out as lone surrogates; join them.
    # Unpaired ones are legal in JS strings and are kept as-is.
    return cooked.encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


# ---------------------------------------------------------------------------
# Shared record construction
# ---------------------------------------------------------------------------

class _ImportCollector:
    """Builds records stamped with the file path, package and tree type."""

    def __init__(self, path: str, package: PackageDescriptor) -> None:
        self.path = path
        self.package = package
        self.imports: list[Import] = []

    def literal(self, specifier: str, is_dynamic: bool) -> None:
        self.imports.append(LiteralImport(
            path=self.path,
            package=self.package,
            is_dynamic=is_dynamic,
            tree_type=self.package.tree_type,
            specifier=specifier,
        ))

    def template(
        self,
        quasis: list[str],
        hints: list[Optional[str]],
        is_dynamic: bool,
    ) -> None:
        if len(quasis) == 1:
            self.literal(quasis[0], is_dynamic)
            return
        self.imports.append(TemplateImport(
            path=self.path,
            package=self.package,
            is_dynamic=is_dynamic,
            tree_type=self.package.tree_type,
            cooked_quasis=tuple(quasis),
            expression_name_hints=tuple(hints),
        ))

    def argument_error(self) -> ImportArgumentError:
        return ImportArgumentError(f"{_ARGUMENT_ERROR} (in {self.path})")


# ---------------------------------------------------------------------------
# tree-sitter
# ---------------------------------------------------------------------------

class TreeSitterImportExtractor:
    """Extracts imports from a tree-sitter :class:`SourceTree`."""

    def __init__(self, path: str, package: PackageDescriptor) -> None:
        self._out = _ImportCollector(path, package)
        self._source = b""

    def extract(self, source_tree) -> list[Import]:
        self._source = source_tree.source
        root = source_tree.root_node
        macro_names = self._macro_bindings(root)

        stack = [root]
        while stack:
            node = stack.pop()
            kind = node.type
            if kind == "import_statement":
                source = node.child_by_field_name("source")
                if source is not None:
                    self._out.literal(self._string_value(source), False)
            elif kind == "export_statement":
                source = node.child_by_field_name("source")
                if source is not None and not self._is_export_all(node):
                    self._out.literal(self._string_value(source), False)
            elif kind == "call_expression":
                func = node.child_by_field_name("function")
                if func is not None:
                    if func.type == "import":
                        self._call_argument(node, True)
                    elif func.type == "identifier" and self._text(func) in macro_names:
                        self._call_argument(node, False)
            stack.extend(reversed(node.children))
        return self._out.imports

    # -- helpers ------------------------------------------------------------

    def _text(self, node) -> str:
        return self._source[node.start_byte:node.end_byte].decode("utf-8")

    def _string_value(self, node) -> str:
        # strip the surrounding quotes
        raw = self._source[node.start_byte + 1:node.end_byte - 1].decode("utf-8")
        return cook(raw)

    @staticmethod
    def _is_export_all(node) -> bool:
        return any(child.type == "*" for child in node.children)

    @staticmethod
    def _expressions(node) -> list:
        return [c for c in node.named_children if c.type != "comment"]

    def _macro_bindings(self, root) -> set[str]:
        """Local names bound to a macro export by top-level import statements."""
        names: set[str] = set()
        for stmt in root.children:
            if stmt.type != "import_statement":
                continue
            source = stmt.child_by_field_name("source")
            if source is None:
                continue
            module = self._string_value(source)
            for clause in stmt.named_children:
                if clause.type != "import_clause":
                    continue
                for named in clause.named_children:
                    if named.type != "named_imports":
                        continue
                    for spec in named.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name = spec.child_by_field_name("name")
                        alias = spec.child_by_field_name("alias")
                        if name is None:
                            continue
                        imported = (
                            self._string_value(name) if name.type == "string" else self._text(name)
                        )
                        if (module, imported) in MACRO_IMPORTS:
                            names.add(self._text(alias) if alias is not None else imported)
        return names

    def _call_argument(self, call, is_dynamic: bool) -> None:
        args = call.child_by_field_name("arguments")
        exprs = self._expressions(args) if args is not None else []
        if not exprs:
            raise self._out.argument_error()
        argument = exprs[0]

        if argument.type == "string":
            self._out.literal(self._string_value(argument), is_dynamic)
        elif argument.type == "template_string":
            quasis, hints = self._template_parts(argument)
            self._out.template(quasis, hints, is_dynamic)
        else:
            raise self._out.argument_error()

    def _template_parts(self, node) -> tuple[list[str], list[Optional[str]]]:
        quasis: list[str] = []
        hints: list[Optional[str]] = []
        start = node.start_byte + 1  # opening backtick
        for sub in node.named_children:
            if sub.type != "template_substitution":
                continue
            quasis.append(cook(self._source[start:sub.start_byte].decode("utf-8")))
            inner = self._expressions(sub)
            if inner and inner[0].type == "identifier":
                hints.append(self._text(inner[0]))
            else:
                hints.append(None)
            start = sub.end_byte
        quasis.append(cook(self._source[start:node.end_byte - 1].decode("utf-8")))
        return quasis, hints


# ---------------------------------------------------------------------------
# esprima / ESTree
# ---------------------------------------------------------------------------

def _get(node, name: str):
    """Read a field from an ESTree node given as an object or a plain dict."""
    if isinstance(node, dict):
        return node.get(name)
    return getattr(node, name, None)


def _is_node(value) -> bool:
    return isinstance(_get(value, "type"), str)


def _child_nodes(node) -> Iterable:
    fields = node.values() if isinstance(node, dict) else vars(node).values()
    for value in fields:
        if isinstance(value, list):
            for item in value:
                if item is not None and _is_node(item):
                    yield item
        elif value is not None and not isinstance(value, (str, int, float, bool)) and _is_node(value):
            yield value


class EsprimaImportExtractor:
    """Extracts imports from an ESTree AST (esprima nodes or plain dicts)."""

    def __init__(self, path: str, package: PackageDescriptor) -> None:
        self._out = _ImportCollector(path, package)

    def extract(self, program) -> list[Import]:
        macro_names = self._macro_bindings(program)

        stack = [program]
        while stack:
            node = stack.pop()
            kind = _get(node, "type")
            if kind == "ImportDeclaration":
                self._out.literal(_get(_get(node, "source"), "value"), False)
            elif kind == "ExportNamedDeclaration":
                source = _get(node, "source")
                if source is not None:
                    self._out.literal(_get(source, "value"), False)
            elif kind == "ImportExpression":
                self._argument(_get(node, "source"), True)
            elif kind == "CallExpression":
                callee = _get(node, "callee")
                callee_type = _get(callee, "type")
                if callee_type == "Import":
                    self._call_argument(node, True)
                elif callee_type == "Identifier" and _get(callee, "name") in macro_names:
                    self._call_argument(node, False)
            stack.extend(reversed(list(_child_nodes(node))))
        return self._out.imports

    @staticmethod
    def _macro_bindings(program) -> set[str]:
        names: set[str] = set()
        for stmt in _get(program, "body") or []:
            if _get(stmt, "type") != "ImportDeclaration":
                continue
            module = _get(_get(stmt, "source"), "value")
            for spec in _get(stmt, "specifiers") or []:
                if _get(spec, "type") != "ImportSpecifier":
                    continue
                imported = _get(spec, "imported")
                imported_name = _get(imported, "name") or _get(imported, "value")
                if (module, imported_name) in MACRO_IMPORTS:
                    names.add(_get(_get(spec, "local"), "name"))
        return names

    def _call_argument(self, call, is_dynamic: bool) -> None:
        args = _get(call, "arguments") or []
        if not args:
            raise self._out.argument_error()
        self._argument(args[0], is_dynamic)

    def _argument(self, argument, is_dynamic: bool) -> None:
        kind = _get(argument, "type")
        if kind in ("Literal", "StringLiteral") and isinstance(_get(argument, "value"), str):
            self._out.literal(_get(argument, "value"), is_dynamic)
        elif kind == "TemplateLiteral":
            quasis = [_get(_get(q, "value"), "cooked") for q in _get(argument, "quasis")]
            hints = [
                _get(e, "name") if _get(e, "type") == "Identifier" else None
                for e in _get(argument, "expressions")
            ]
            self._out.template(quasis, hints, is_dynamic)
        else:
            raise self._out.argument_error()


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def extract_imports(
    path: str,
    ast,
    backend_kind: str,
    package: PackageDescriptor,
) -> list[Import]:
    """
    Return the imports found in *ast*, in source order.

    Parameters
    ----------
    path:
        Path of the file the AST came from (stamped on each record).
    ast:
        The value returned by the backend's ``parse``.
    backend_kind:
        ``"tree-sitter"`` or ``"esprima"``.
    package:
        Owning package descriptor.

    Raises
    ------
    ImportArgumentError
        If an import()/importSync() call has an unsupported argument.
    """
    if backend_kind == PARSER_TREE_SITTER:
        return TreeSitterImportExtractor(path, package).extract(ast)
    if backend_kind == PARSER_ESPRIMA:
        return EsprimaImportExtractor(path, package).extract(ast)
    raise ValueError(f"Unknown parser backend: {backend_kind!r}")
