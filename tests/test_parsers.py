"""
Unit tests for import_analyzer.parsers

Covers backend selection, option merging, and the split between syntax
errors (recoverable) and setup errors (fatal).
"""

from __future__ import annotations

import pytest

from import_analyzer.package import PackageDescriptor


def _package(tmp_path, **kwargs):
    return PackageDescriptor(name="my-addon", root=str(tmp_path), **kwargs)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

class TestSetupParser:
    def test_tree_sitter_is_default(self, tmp_path):
        from import_analyzer.parsers import setup_parser, TreeSitterBackend
        backend = setup_parser(_package(tmp_path))
        assert isinstance(backend, TreeSitterBackend)
        assert backend.kind == "tree-sitter"
        assert backend.syntax is None

    def test_grammar_follows_extension(self, tmp_path):
        from import_analyzer.parsers import setup_parser
        backend = setup_parser(_package(tmp_path))
        assert backend.syntax_for("app/a.js") == "javascript"
        assert backend.syntax_for("app/a.jsx") == "javascript"
        assert backend.syntax_for("app/a.ts") == "typescript"
        assert backend.syntax_for("app/A.TSX") == "tsx"
        assert backend.syntax_for(None) == "javascript"

    def test_syntax_option_pins_grammar(self, tmp_path):
        from import_analyzer.parsers import setup_parser
        backend = setup_parser(_package(tmp_path, parser_options={"syntax": "typescript"}))
        assert backend.syntax_for("app/a.js") == "typescript"

    def test_esprima_backend(self, tmp_path):
        from import_analyzer.parsers import setup_parser, EsprimaBackend
        backend = setup_parser(_package(tmp_path, parser="esprima"))
        assert isinstance(backend, EsprimaBackend)
        assert backend.kind == "esprima"

    def test_unsupported_esprima_version(self, tmp_path):
        from import_analyzer.parsers import setup_parser, ParserSetupError
        package = _package(tmp_path, parser="esprima", esprima_major_version=2)
        with pytest.raises(ParserSetupError) as exc_info:
            setup_parser(package)
        assert "esprima version 2" in str(exc_info.value)
        assert "my-addon" in str(exc_info.value)

    def test_unknown_tree_sitter_syntax(self, tmp_path):
        from import_analyzer.parsers import setup_parser, ParserSetupError
        package = _package(tmp_path, parser_options={"syntax": "coffeescript"})
        with pytest.raises(ParserSetupError):
            setup_parser(package)

    def test_options_merged_over_defaults(self, tmp_path):
        from import_analyzer.parsers import merge_options
        options = merge_options(_package(tmp_path, parser_options={"decorators": False, "jsx": True}))
        assert options == {"dynamic_import": True, "decorators": False, "jsx": True}

    def test_default_options_enable_import_and_decorators(self, tmp_path):
        from import_analyzer.parsers import merge_options
        options = merge_options(_package(tmp_path))
        assert options["dynamic_import"] is True
        assert options["decorators"] is True


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestTreeSitterParse:
    def test_valid_source(self, tmp_path):
        from import_analyzer.parsers import setup_parser
        backend = setup_parser(_package(tmp_path))
        result = backend.parse("import a from 'a';\n")
        assert result.root_node.type == "program"
        assert result.source == b"import a from 'a';\n"

    def test_syntax_error(self, tmp_path):
        from import_analyzer.parsers import setup_parser, ParseSyntaxError
        backend = setup_parser(_package(tmp_path))
        with pytest.raises(ParseSyntaxError):
            backend.parse("import { from ;;")

    def test_syntax_error_is_a_syntax_error(self):
        from import_analyzer.parsers import ParseSyntaxError
        assert issubclass(ParseSyntaxError, SyntaxError)

    def test_decorators_accepted_by_default(self, tmp_path):
        from import_analyzer.parsers import setup_parser
        backend = setup_parser(_package(tmp_path))
        backend.parse("@tracked\nclass Foo {}\n")

    def test_decorators_disabled(self, tmp_path):
        from import_analyzer.parsers import setup_parser, ParseSyntaxError
        backend = setup_parser(_package(tmp_path, parser_options={"decorators": False}))
        with pytest.raises(ParseSyntaxError, match="Decorators"):
            backend.parse("@tracked\nclass Foo {}\n")

    def test_dynamic_import_disabled(self, tmp_path):
        from import_analyzer.parsers import setup_parser, ParseSyntaxError
        backend = setup_parser(_package(tmp_path, parser_options={"dynamic_import": False}))
        backend.parse("import a from 'a';\n")
        with pytest.raises(ParseSyntaxError, match="Dynamic import"):
            backend.parse("import('a');\n")

    def test_typescript_syntax(self, tmp_path):
        from import_analyzer.parsers import setup_parser
        backend = setup_parser(_package(tmp_path, parser_options={"syntax": "typescript"}))
        result = backend.parse("import type { A } from './types';\nconst x: number = 1;\n")
        assert not result.root_node.has_error

    def test_typescript_file_by_extension(self, tmp_path):
        from import_analyzer.parsers import setup_parser, ParseSyntaxError
        backend = setup_parser(_package(tmp_path))
        source = "import x from 'x';\nlet n: number = 1;\n"
        result = backend.parse(source, "app/a.ts")
        assert not result.root_node.has_error
        with pytest.raises(ParseSyntaxError):
            backend.parse(source, "app/a.js")

    def test_tsx_file_by_extension(self, tmp_path):
        from import_analyzer.parsers import setup_parser
        backend = setup_parser(_package(tmp_path))
        source = "const el = <div>{(n as number)}</div>;\n"
        assert not backend.parse(source, "app/a.tsx").root_node.has_error


class TestEsprimaParse:
    def test_valid_module(self, tmp_path):
        from import_analyzer.parsers import setup_parser
        backend = setup_parser(_package(tmp_path, parser="esprima"))
        program = backend.parse("import a from 'a';\nexport default a;\n")
        assert program.type == "Program"

    def test_syntax_error(self, tmp_path):
        from import_analyzer.parsers import setup_parser, ParseSyntaxError
        backend = setup_parser(_package(tmp_path, parser="esprima"))
        with pytest.raises(ParseSyntaxError):
            backend.parse("import { from ;;")

    def test_only_esprima_options_are_forwarded(self, tmp_path):
        from import_analyzer.parsers import setup_parser
        backend = setup_parser(_package(tmp_path, parser="esprima", parser_options={"jsx": True}))
        assert backend._esprima_options == {"jsx": True}
