"""
Unit tests for import_analyzer.config
"""

from __future__ import annotations

import pytest

_ENV_KEYS = [
    "IMPORT_ANALYZER_NAME",
    "IMPORT_ANALYZER_PARSER",
    "IMPORT_ANALYZER_EXTENSIONS",
    "IMPORT_ANALYZER_ESPRIMA_VERSION",
    "IMPORT_ANALYZER_TREE_TYPE",
    "IMPORT_ANALYZER_OUTPUT_DIR",
    "IMPORT_ANALYZER_DEBOUNCE",
    "IMPORT_ANALYZER_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestConfig:
    def test_defaults(self):
        from import_analyzer.config import Config
        c = Config()
        assert c.PARSER == "tree-sitter"
        assert "js" in c.EXTENSIONS
        assert c.ESPRIMA_VERSION == 4
        assert c.TREE_TYPE is None
        assert c.PARSER_OPTIONS == {}

    def test_yaml_values(self):
        from import_analyzer.config import Config
        c = Config({
            "parser": "esprima",
            "extensions": ["js", ".ts"],
            "parser_options": {"jsx": True},
            "tree_type": "addon",
        })
        assert c.PARSER == "esprima"
        assert c.EXTENSIONS == ["js", "ts"]
        assert c.PARSER_OPTIONS == {"jsx": True}
        assert c.TREE_TYPE == "addon"

    def test_env_beats_yaml(self, monkeypatch):
        from import_analyzer.config import Config
        monkeypatch.setenv("IMPORT_ANALYZER_PARSER", "tree-sitter")
        monkeypatch.setenv("IMPORT_ANALYZER_EXTENSIONS", "mjs, cjs")
        monkeypatch.setenv("IMPORT_ANALYZER_ESPRIMA_VERSION", "3")
        c = Config({"parser": "esprima", "extensions": ["js"]})
        assert c.PARSER == "tree-sitter"
        assert c.EXTENSIONS == ["mjs", "cjs"]
        assert c.ESPRIMA_VERSION == 3

    def test_override(self):
        from import_analyzer.config import Config
        c = Config().override(parser="esprima", extensions="ts,tsx", tree_type=None)
        assert c.PARSER == "esprima"
        assert c.EXTENSIONS == ["ts", "tsx"]
        assert c.TREE_TYPE is None

    def test_override_unknown_key(self):
        from import_analyzer.config import Config
        with pytest.raises(AttributeError):
            Config().override(colour="blue")

    def test_load_from_file(self, tmp_path):
        from import_analyzer.config import Config
        cfg = tmp_path / "custom.yaml"
        cfg.write_text("parser: esprima\nesprima_version: 4\nname: shop\n", encoding="utf-8")
        c = Config.load(str(cfg))
        assert c.PARSER == "esprima"
        assert c.NAME == "shop"

    def test_load_missing_explicit_file(self, tmp_path):
        from import_analyzer.config import Config
        c = Config.load(str(tmp_path / "missing.yaml"))
        assert c.PARSER == "tree-sitter"

    def test_invalid_yaml_ignored(self, tmp_path):
        from import_analyzer.config import Config
        cfg = tmp_path / "bad.yaml"
        cfg.write_text("parser: [unclosed\n", encoding="utf-8")
        assert Config.load(str(cfg)).PARSER == "tree-sitter"

    def test_package_descriptor(self, tmp_path):
        from import_analyzer.config import Config
        c = Config({"parser": "esprima", "tree_type": "test", "parser_options": {"jsx": True}})
        package = c.package_descriptor(str(tmp_path / "my-lib"))
        assert package.name == "my-lib"
        assert package.parser == "esprima"
        assert package.tree_type == "test"
        assert package.parser_options == {"jsx": True}

    def test_package_descriptor_rejects_bad_parser(self, tmp_path):
        from import_analyzer.config import Config
        with pytest.raises(ValueError):
            Config({"parser": "swc"}).package_descriptor(str(tmp_path))

    def test_non_mapping_yaml_ignored(self, tmp_path):
        from import_analyzer.config import Config
        cfg = tmp_path / "list.yaml"
        cfg.write_text("- esprima\n- tree-sitter\n", encoding="utf-8")
        assert Config.load(str(cfg)).PARSER == "tree-sitter"

    def test_instances_do_not_share_extension_lists(self):
        from import_analyzer.config import Config
        first = Config()
        first.EXTENSIONS.append("vue")
        assert "vue" not in Config().EXTENSIONS
