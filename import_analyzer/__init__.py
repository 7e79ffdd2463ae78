"""
import_analyzer — incremental discovery of module imports in JavaScript trees.

Public API for library usage::

    from import_analyzer import ImportAnalyzer, PackageDescriptor

    analyzer = ImportAnalyzer(PackageDescriptor(name="my-app", root="app"))
    analyzer.build()
    for imp in analyzer.imports:
        print(imp.path, imp.specifier)
"""

from .analyzer import BuildStats, ImportAnalyzer
from .extractors import ImportArgumentError, extract_imports
from .models import Import, LiteralImport, TemplateImport
from .package import PackageDescriptor
from .parsers import ParserSetupError, ParseSyntaxError, setup_parser
from .store import AggregateView, ImportStore
from .tree_diff import PatchOperation, TreeSnapshot, calculate_patch

__version__ = "0.1.0"

__all__ = [
    "AggregateView",
    "BuildStats",
    "Import",
    "ImportAnalyzer",
    "ImportArgumentError",
    "ImportStore",
    "LiteralImport",
    "PackageDescriptor",
    "ParseSyntaxError",
    "ParserSetupError",
    "PatchOperation",
    "TemplateImport",
    "TreeSnapshot",
    "calculate_patch",
    "extract_imports",
    "setup_parser",
]
