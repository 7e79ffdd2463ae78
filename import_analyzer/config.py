"""
Configuration — loads settings from .import-analyzer.yaml, environment
variables, and built-in defaults (in that priority order: CLI args > env >
YAML > defaults).
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Iterator, NamedTuple

import yaml

from .package import DEFAULT_FILE_EXTENSIONS, PackageDescriptor

logger = logging.getLogger(__name__)

_ENV_PREFIX = "IMPORT_ANALYZER_"

_CONFIG_FILENAMES = (".import-analyzer.yaml", ".import-analyzer.yml")


def _split_extensions(value) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    return [str(v).strip().lstrip(".") for v in value if str(v).strip()]


def _upper(value) -> str:
    return str(value).upper()


class _Setting(NamedTuple):
    attr: str
    env: str              # suffix after IMPORT_ANALYZER_
    default: object
    cast: Callable = str

    @property
    def yaml_key(self) -> str:
        return self.attr.lower()


_SETTINGS: tuple[_Setting, ...] = (
    _Setting("NAME", "NAME", ""),
    _Setting("PARSER", "PARSER", "tree-sitter"),
    _Setting("EXTENSIONS", "EXTENSIONS", list(DEFAULT_FILE_EXTENSIONS), _split_extensions),
    _Setting("ESPRIMA_VERSION", "ESPRIMA_VERSION", 4, int),
    _Setting("TREE_TYPE", "TREE_TYPE", None),
    _Setting("OUTPUT_DIR", "OUTPUT_DIR", None),
    _Setting("DEBOUNCE_SECONDS", "DEBOUNCE", 0.5, float),
    _Setting("LOG_LEVEL", "LOG_LEVEL", "WARNING", _upper),
)


def _candidate_paths(explicit_path: str | None) -> Iterator[str]:
    if explicit_path:
        yield explicit_path
        return
    for directory in (os.getcwd(), os.path.expanduser("~")):
        for name in _CONFIG_FILENAMES:
            yield os.path.join(directory, name)


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """First existing config file: the explicit path only, else CWD then home."""
    return next((p for p in _candidate_paths(explicit_path) if os.path.isfile(p)), None)


def _load_yaml(path: str) -> dict:
    """Parse *path* as a YAML mapping; anything unusable reads as empty."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring config file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: not a mapping", path)
        return {}
    return data


class Config:
    """Analyzer configuration.

    Settings are resolved in priority order:
    1. CLI arguments (applied with :meth:`override`)
    2. Environment variables (``IMPORT_ANALYZER_<NAME>``)
    3. .import-analyzer.yaml config file
    4. Built-in defaults
    """

    NAME: str
    PARSER: str
    EXTENSIONS: list[str]
    ESPRIMA_VERSION: int
    TREE_TYPE: str | None
    OUTPUT_DIR: str | None
    DEBOUNCE_SECONDS: float
    LOG_LEVEL: str

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}
        for setting in _SETTINGS:
            raw = os.getenv(_ENV_PREFIX + setting.env)
            if raw is None:
                raw = yd.get(setting.yaml_key)
            if raw is None:
                value = list(setting.default) if isinstance(setting.default, list) else setting.default
            else:
                value = setting.cast(raw)
            setattr(self, setting.attr, value)

        # Backend-specific options are only configurable from YAML
        options = yd.get("parser_options")
        self.PARSER_OPTIONS: dict = dict(options) if isinstance(options, dict) else {}

    def override(self, **values) -> "Config":
        """Apply CLI overrides; None values are ignored."""
        for key, value in values.items():
            if value is None:
                continue
            attr = key.upper()
            if not hasattr(self, attr):
                raise AttributeError(f"Unknown config setting: {key}")
            if attr == "EXTENSIONS":
                value = _split_extensions(value)
            setattr(self, attr, value)
        return self

    def package_descriptor(self, root: str) -> PackageDescriptor:
        """
        Build the :class:`PackageDescriptor` for the package at *root*.

        Raises
        ------
        ValueError
            If the parser or tree type is not recognised.
        """
        root = os.path.abspath(root)
        return PackageDescriptor(
            name=self.NAME or os.path.basename(root),
            root=root,
            file_extensions=tuple(self.EXTENSIONS),
            parser=self.PARSER,
            parser_options=dict(self.PARSER_OPTIONS),
            esprima_major_version=self.ESPRIMA_VERSION,
            tree_type=self.TREE_TYPE,
        )

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
