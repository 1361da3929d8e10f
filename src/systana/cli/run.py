"""Implementation of `systana run`."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from systana.core.config import ConfigurationError
from systana.core.pipeline import run_analysis
from systana.data.io import EventIOError
from systana.reporting.json import build_report_payload
from systana.reporting.md import render_report_md


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("run", help="Fill baseline and varied spectra in one pass")
    parser.add_argument("events", help="Event table (.parquet or .csv)")
    parser.add_argument("--config", default=None, help="Analysis config YAML")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for stochastic systematics")
    parser.add_argument("--shards", type=int, default=None, help="Split the pass into N merged shards")
    parser.add_argument("--scale", type=float, default=1.0, help="Exposure factor applied to printed sums")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--out", default=None, help="Also write the resolved config and markdown report into this directory")
    parser.set_defaults(func=cmd_run)


def cmd_run(args: argparse.Namespace) -> int:
    try:
        result = run_analysis(
            events_path=args.events,
            config_path=args.config,
            seed=args.seed,
            shards=args.shards,
            argv=sys.argv,
            out_dir=args.out,
        )
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    except EventIOError as exc:
        print(f"Event input error: {exc}", file=sys.stderr)
        return 2

    text = render_report_md(result, scale=args.scale)
    if args.out:
        (Path(args.out) / "report.md").write_text(text + "\n", encoding="utf-8")
    if args.json:
        print(json.dumps(build_report_payload(result, scale=args.scale), indent=2, sort_keys=True, default=str))
    else:
        print(text)
    return 0
