"""Implementation of `systana schema`."""

from __future__ import annotations

import argparse

import yaml

CONFIG_TEMPLATE = {
    "binning": {"n": 40, "lo": 0.0, "hi": 10.0},
    "variable": "reco_qe_energy",
    "cut": "cc0pi_reco",
    "seed": 42,
    "events": {"weight_column": None, "id_column": "event_id"},
    "variations": {
        "scale_up": {"muScale": 1.0},
        "scale_down": {"muScale": -1.0},
        "smear": {"muSmear": 1.0},
        "theta_smear": {"thetaSmear": 1.0},
    },
    "faults": {"max_reported": 5},
    "shards": {"n": 1, "max_workers": None},
}


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("schema", help="Print an analysis config template")
    parser.set_defaults(func=cmd_schema)


def cmd_schema(args: argparse.Namespace) -> int:
    del args
    print(yaml.safe_dump(CONFIG_TEMPLATE, sort_keys=False))
    return 0
