"""
Unit tests for import_analyzer.cli
"""

from __future__ import annotations

import json
import pytest


@pytest.fixture()
def project(tmp_path, monkeypatch):
    """A small source tree; CWD and HOME point at an empty directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(home)
    for key in ("IMPORT_ANALYZER_PARSER", "IMPORT_ANALYZER_EXTENSIONS", "IMPORT_ANALYZER_TREE_TYPE"):
        monkeypatch.delenv(key, raising=False)

    root = tmp_path / "proj"
    (root / "app").mkdir(parents=True)
    (root / "app" / "main.js").write_text(
        "import Component from '@glimmer/component';\nimport(`./pages/${page}`);\n",
        encoding="utf-8",
    )
    (root / "app" / "broken.js").write_text("import {", encoding="utf-8")
    return root


class TestScan:
    def test_json_output(self, project, capsys):
        from import_analyzer.cli import main
        main(["scan", str(project), "--json", "--tree-type", "app"])
        data = json.loads(capsys.readouterr().out)
        assert data[0]["specifier"] == "@glimmer/component"
        assert data[0]["package"] == "proj"
        assert data[0]["tree_type"] == "app"
        assert data[1]["cooked_quasis"] == ["./pages/", ""]
        assert data[1]["expression_name_hints"] == ["page"]

    def test_table_output(self, project, capsys):
        from import_analyzer.cli import main
        main(["scan", str(project), "--parser", "esprima"])
        out = capsys.readouterr().out
        assert "@glimmer/component" in out
        assert "`./pages/${page}`" in out
        assert "Syntax errors: 1" in out

    def test_extension_filter(self, project, capsys):
        from import_analyzer.cli import main
        main(["scan", str(project), "--ext", "ts", "--json"])
        assert json.loads(capsys.readouterr().out) == []

    def test_missing_root(self, tmp_path, capsys):
        from import_analyzer.cli import main
        with pytest.raises(SystemExit) as exc_info:
            main(["scan", str(tmp_path / "nowhere")])
        assert exc_info.value.code == 1
        assert "Not a directory" in capsys.readouterr().err

    def test_bad_tree_type(self, project, capsys):
        from import_analyzer.cli import main
        with pytest.raises(SystemExit) as exc_info:
            main(["scan", str(project), "--tree-type", "vendor"])
        assert exc_info.value.code == 1
        assert "Invalid configuration" in capsys.readouterr().err

    def test_fatal_build_error(self, project, capsys):
        from import_analyzer.cli import main
        (project / "app" / "bad.js").write_text("import(load());", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["scan", str(project)])
        assert exc_info.value.code == 1
        assert "Build failed" in capsys.readouterr().err

    def test_output_inside_root_is_rejected(self, project, capsys):
        from import_analyzer.cli import main
        with pytest.raises(SystemExit) as exc_info:
            main(["watch", str(project), "--output", str(project / "dist")])
        assert exc_info.value.code == 1
        assert "must not be inside" in capsys.readouterr().err
        assert not (project / "dist").exists()

    def test_requires_command(self):
        from import_analyzer.cli import main
        with pytest.raises(SystemExit):
            main([])
