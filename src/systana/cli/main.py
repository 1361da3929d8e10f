"""Main CLI entrypoint."""

from __future__ import annotations

import argparse
import sys

from systana.cli import run, schema, systs, validate
from systana.core.logging import setup_logging
from systana.physics import register_builtins


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="systana", description="Single-pass systematic variation spectra")
    subparsers = parser.add_subparsers(dest="command")

    run.register(subparsers)
    validate.register(subparsers)
    systs.register(subparsers)
    schema.register(subparsers)

    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    register_builtins()
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=getattr(args, "verbose", False))

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return int(args.func(args))
    except KeyboardInterrupt:
        print("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
