#!/usr/bin/env python
import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .config import Settings
from .errors import ConfigError, ParseError
from .log import configure_logging
from .messages import CATALOGS
from .pipeline import WorkflowAnalyzer
from .types import FunctionCatalog


def load_catalog(path: Path) -> FunctionCatalog:
    """Read plugin packages from JSON: a list of packages or {"packages": [...]}."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        data = {"packages": data}
    return FunctionCatalog.model_validate(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowlens",
        description="flowlens - explain what a workflow script will do",
    )
    subparsers = parser.add_subparsers(dest="command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", help="Workflow script (.ts or .js)")
    common.add_argument("--locale", choices=sorted(CATALOGS), help="Message language (default: FLOWLENS_LOCALE or en)")
    common.add_argument("--summary-max", type=int, help="Longest one-line summary in the Steps view")
    common.add_argument("--log-level", help="Log level, e.g. DEBUG or WARNING")
    common.add_argument("--functions", type=Path, help="JSON file with plugin packages used for call titles")

    subparsers.add_parser("steps", parents=[common], help="Print the Steps view as JSON")
    subparsers.add_parser("actions", parents=[common], help="Print the Actions view as JSON")
    subparsers.add_parser("raw", parents=[common], help="Print the source with types stripped")
    subparsers.add_parser("check", parents=[common], help="Exit 0 if the script parses")
    return parser


def _dump(items) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items], ensure_ascii=False, indent=2)


def _format_error(e: ParseError) -> str:
    return f"Error: {e.message}"


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    try:
        settings = Settings.from_env(
            locale=args.locale,
            summary_max=args.summary_max,
            log_level=args.log_level,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level)

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: Could not find workflow file '{args.file}'", file=sys.stderr)
        return 1
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: Could not read workflow file '{args.file}': {e}", file=sys.stderr)
        return 1

    catalog = None
    if args.functions is not None:
        try:
            catalog = load_catalog(args.functions)
        except (OSError, ValueError, ValidationError) as e:
            print(f"Error: Could not load functions from '{args.functions}': {e}", file=sys.stderr)
            return 2

    analyzer = WorkflowAnalyzer(settings, catalog=catalog)
    try:
        if args.command == "steps":
            print(_dump(analyzer.steps(source)))
        elif args.command == "actions":
            print(_dump(analyzer.actions(source)))
        elif args.command == "raw":
            analyzer.parse(source)
            print(analyzer.raw(source))
        elif args.command == "check":
            analyzer.parse(source)
            print(f"OK: {path}")
    except ParseError as e:
        print(_format_error(e), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
