"""
`import-analyzer` command line interface.

Commands
--------
import-analyzer scan [ROOT]                 -- one build, print the imports
import-analyzer scan [ROOT] --json          -- same, as JSON
import-analyzer watch [ROOT]                -- build, then rebuild on every change
import-analyzer watch [ROOT] --output DIR   -- also mirror the tree into DIR
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional

from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_config(args: argparse.Namespace) -> Config:
    config = Config.load(args.config)
    return config.override(
        parser=args.parser,
        extensions=args.ext,
        tree_type=args.tree_type,
        output_dir=getattr(args, "output", None),
    )


def _make_analyzer(args: argparse.Namespace):
    from .analyzer import ImportAnalyzer

    config = _load_config(args)
    root = os.path.abspath(args.root)
    if not os.path.isdir(root):
        print(f"Not a directory: {root}", file=sys.stderr)
        sys.exit(1)
    try:
        package = config.package_descriptor(root)
        analyzer = ImportAnalyzer(package, input_root=root, output_root=config.OUTPUT_DIR)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)
    return analyzer, config


def _describe(imp) -> str:
    if hasattr(imp, "specifier"):
        target = imp.specifier
    else:
        parts = [imp.cooked_quasis[0]]
        for hint, quasi in zip(imp.expression_name_hints, imp.cooked_quasis[1:]):
            parts.append("${" + (hint or "?") + "}")
            parts.append(quasi)
        target = "`" + "".join(parts) + "`"
    kind = "dynamic" if imp.is_dynamic else "static"
    return f"  {imp.path:<40} {kind:<8} {target}"


def _print_imports(imports, as_json: bool) -> None:
    if as_json:
        print(json.dumps([imp.to_dict() for imp in imports], indent=2))
        return
    if not imports:
        print("  (no imports found)")
        return
    print(f"\nImports  [{len(imports)} result(s)]")
    print("-" * 60)
    for imp in imports:
        print(_describe(imp))


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------

def _cmd_scan(args: argparse.Namespace) -> None:
    """Run a single build and print the discovered imports."""
    analyzer, _config = _make_analyzer(args)
    try:
        stats = analyzer.build()
    except Exception as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        sys.exit(1)
    _print_imports(analyzer.imports, args.json)
    if not args.json:
        print(
            f"\nScan complete:\n"
            f"  Files parsed:  {stats.files_parsed}\n"
            f"  Syntax errors: {stats.syntax_errors}\n"
            f"  Imports:       {stats.import_count}\n"
            f"  Time:          {stats.elapsed_seconds:.2f}s"
        )


def _cmd_watch(args: argparse.Namespace) -> None:
    """Build once, then keep rebuilding as the tree changes."""
    from .watcher import BuildWatcher

    analyzer, config = _make_analyzer(args)
    try:
        stats = analyzer.build()
    except Exception as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"Initial build: {stats.import_count} imports in {stats.files_parsed} files")

    def _on_build(stats) -> None:
        print(f"Rebuilt: {stats.operations} changes, {stats.import_count} imports")

    print("Watching for changes... (Ctrl+C to stop)")
    watcher = BuildWatcher(analyzer, config.DEBOUNCE_SECONDS, on_build=_on_build)
    try:
        watcher.start()  # blocking
    except KeyboardInterrupt:
        print("\nWatcher stopped.")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _add_common_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("root", nargs="?", default=".", help="Directory to analyze")
    p.add_argument("--config", default=None, help="Path to a .import-analyzer.yaml file")
    p.add_argument(
        "--parser", choices=["tree-sitter", "esprima"], default=None,
        help="Parser backend (default: tree-sitter)",
    )
    p.add_argument(
        "--ext", default=None,
        help="Comma-separated file extensions to parse, e.g. js,ts",
    )
    p.add_argument("--tree-type", dest="tree_type", default=None, help="Tree type tag")


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="import-analyzer",
        description="Incremental discovery of module imports in JavaScript source trees",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # --- scan ---
    scan_p = subparsers.add_parser("scan", help="Analyze a tree once and print its imports")
    _add_common_arguments(scan_p)
    scan_p.add_argument("--json", action="store_true", help="Print imports as JSON")
    scan_p.set_defaults(func=_cmd_scan)

    # --- watch ---
    watch_p = subparsers.add_parser("watch", help="Rebuild whenever the tree changes")
    _add_common_arguments(watch_p)
    watch_p.add_argument("--output", default=None, help="Mirror the input tree into DIR")
    watch_p.set_defaults(func=_cmd_watch)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> None:
    """
    Main entry point for the `import-analyzer` command.

    Parameters
    ----------
    argv:
        Argument list. Defaults to sys.argv if None.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Configure logging if not already configured
    if not logging.root.handlers:
        level = Config.load(args.config).LOG_LEVEL
        logging.basicConfig(
            level=getattr(logging, level, logging.WARNING),
            format="%(levelname)s  %(name)s  %(message)s",
        )

    args.func(args)


if __name__ == "__main__":
    main()
