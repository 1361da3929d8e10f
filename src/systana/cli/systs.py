"""Implementation of `systana systs`."""

from __future__ import annotations

import argparse

from systana.core.registry import CUTS, SYSTEMATICS, VARIABLES


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("systs", help="List registered systematics, variables and cuts")
    parser.set_defaults(func=cmd_systs)


def cmd_systs(args: argparse.Namespace) -> int:
    del args
    print("Systematics:")
    for name, syst in SYSTEMATICS.items():
        print(f"  {name:<16} {syst.description}")
    print("Variables:")
    for name in VARIABLES.names():
        print(f"  {name}")
    print("Cuts:")
    for name, cut in CUTS.items():
        print(f"  {name:<16} {cut.name}")
    return 0
