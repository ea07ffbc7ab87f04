"""CLI for printing Netspoc policy files in canonical form."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from spocparser import ParseException, Parser, Printer


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Parse a Netspoc policy file and print it in canonical form, keeping its comments."
    )
    parser.add_argument("input", help="Path to the policy file.")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="File to write the formatted policy to (defaults to stdout).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log scanner, parser and printer progress to stderr.",
    )
    return parser.parse_args(argv)


def format_document(source: bytes | str, fname: str, verbose: bool = False) -> str:
    parser = Parser(source, fname, config={"enable_logger": verbose})
    document = parser.parse_document()
    return document.render(Printer(config={"enable_logger": verbose}))


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    path = Path(args.input)
    try:
        source = path.read_bytes()
    except OSError as exc:
        print(f"Error: Can't {exc}", file=sys.stderr)
        return 1
    try:
        formatted = format_document(source, args.input, verbose=args.verbose)
    except ParseException as exc:
        print(exc, file=sys.stderr)
        return 1
    if args.output:
        Path(args.output).write_text(formatted, encoding="utf-8")
    else:
        sys.stdout.write(formatted)
    return 0


if __name__ == "__main__":
    sys.exit(main())
