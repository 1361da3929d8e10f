"""Implementation of `systana validate`."""

from __future__ import annotations

import argparse

from systana.core.binning import Binning
from systana.core.config import ConfigurationError, resolve_config
from systana.core.registry import RegistryError, get_cut, get_var
from systana.syst.shifts import VariationSet


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("validate", help="Check an analysis config without reading events")
    parser.add_argument("config", help="Analysis config YAML")
    parser.set_defaults(func=cmd_validate)


def cmd_validate(args: argparse.Namespace) -> int:
    try:
        cfg = resolve_config(config_path=args.config)
        binning = Binning.from_config(cfg["binning"])
        get_var(cfg["variable"])
        get_cut(cfg["cut"])
        variations = {label: VariationSet.from_config(s) for label, s in cfg["variations"].items()}
    except (ConfigurationError, RegistryError) as exc:
        print("Validation: FAIL")
        print(f"- {exc}")
        return 2

    print("Validation: PASS")
    print(f"- {binning.n_bins} bins over [{binning.lo:g}, {binning.hi:g})")
    for label, vs in variations.items():
        print(f"- {label}: {vs.label}")
    return 0
