from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable

from loguru import logger

from stackwrap.errors import MalformedTraceError, PatternError
from stackwrap.stack_filter import StackTraceFilter


def handle_filter(args: argparse.Namespace) -> int:
    try:
        stack_filter = StackTraceFilter(args.base, args.exclude)
    except PatternError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if args.file in (None, "-"):
        raw_stack = sys.stdin.read()
    else:
        try:
            with open(args.file, encoding="utf-8") as handle:
                raw_stack = handle.read()
        except OSError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    try:
        if args.base_path:
            report = stack_filter.filter_only_base_path(args.base_path, raw_stack, args.format)
        else:
            report = stack_filter.filter(raw_stack, args.format)
    except MalformedTraceError as exc:
        logger.debug("Rejected stack input: {}", exc.record)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if report:
        print(report)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackwrap", description="Utilities for working with captured stack traces"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    filter_parser = subparsers.add_parser(
        "filter",
        help="Filter a rendered stack trace",
        description=(
            "Filter a rendered stack trace (function line followed by a tab-indented\n"
            "file:line line, per frame) down to the frames whose location matches.\n\n"
            "Examples:\n"
            "  stackwrap filter --base '/myapp/' trace.txt\n"
            "  stackwrap filter --base '/myapp/' --base-path myapp/ --format json < trace.txt"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    filter_parser.add_argument(
        "--base",
        action="append",
        default=[],
        help="Regular expression a location must match (repeatable, default: match all)",
    )
    filter_parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Regular expression that drops a matching location (repeatable)",
    )
    filter_parser.add_argument(
        "--base-path",
        help="Cut each location so that it starts at this marker",
    )
    filter_parser.add_argument(
        "--format",
        choices=("plain", "json"),
        default="plain",
        help="Output format (default: plain)",
    )
    filter_parser.add_argument(
        "file",
        nargs="?",
        help="File holding the rendered stack; '-' or omitted reads stdin",
    )
    filter_parser.set_defaults(func=handle_filter)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
