"""Configured analysis: one baseline and every configured variation in one pass."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from systana.core.binning import Binning
from systana.core.config import ConfigurationError, dump_yaml, resolve_config
from systana.core.loader import SpectrumLoader
from systana.core.provenance import events_digest, run_metadata
from systana.core.registry import RegistryError, get_cut, get_var
from systana.core.types import AnalysisResult
from systana.data.io import iter_records, load_events, partition
from systana.ops.compare import fractional_deviation
from systana.syst.shifts import VariationSet

logger = logging.getLogger(__name__)

NOMINAL_LABEL = "nominal"


def run_analysis(
    events_path: str | Path,
    config_path: str | Path | None = None,
    seed: int | None = None,
    shards: int | None = None,
    argv: list[str] | None = None,
    out_dir: str | Path | None = None,
) -> AnalysisResult:
    overrides: dict[str, Any] = {}
    if seed is not None:
        overrides["seed"] = int(seed)
    if shards is not None:
        overrides["shards"] = {"n": int(shards)}
    cfg = resolve_config(config_path=config_path, overrides=overrides)
    if out_dir is not None:
        dump_yaml(cfg, Path(out_dir) / "config_resolved.yaml")

    events = load_events(events_path)
    result = run_configured(cfg, events, argv=argv)
    result.metadata["events_path"] = str(Path(events_path).resolve())
    result.metadata["events_sha256"] = events_digest(events_path)
    return result


def run_configured(
    cfg: dict[str, Any],
    events: pd.DataFrame,
    argv: list[str] | None = None,
) -> AnalysisResult:
    """Build every spectrum from a resolved config, then fill them all in one pass."""

    binning = Binning.from_config(cfg["binning"])
    try:
        var = get_var(cfg["variable"])
        cut = get_cut(cfg["cut"])
    except RegistryError as exc:
        raise ConfigurationError(str(exc)) from exc

    variations: dict[str, VariationSet] = {}
    for label, shifts in cfg.get("variations", {}).items():
        if label == NOMINAL_LABEL:
            raise ConfigurationError(f"'{NOMINAL_LABEL}' is reserved for the baseline spectrum")
        variations[label] = VariationSet.from_config(shifts)

    seed = int(cfg["seed"])
    loader = SpectrumLoader(
        iter_records(events, **_event_columns(cfg)),
        rng=np.random.default_rng(seed),
        max_reported_faults=int(cfg["faults"]["max_reported"]),
    )
    baseline = loader.spectrum(var, binning, cut, label=NOMINAL_LABEL)
    varied = {
        label: loader.spectrum(var, binning, cut, shifts=shifts, label=label)
        for label, shifts in variations.items()
    }
    logger.info(
        "Analysis '%s' with cut '%s': baseline + %d variation(s)",
        cfg["variable"],
        cfg["cut"],
        len(varied),
    )

    n_shards = int(cfg["shards"]["n"])
    if n_shards > 1:
        parts = [iter_records(p, **_event_columns(cfg)) for p in partition(events, n_shards)]
        summary = loader.go_sharded(parts, max_workers=cfg["shards"].get("max_workers"))
    else:
        summary = loader.go()

    deviations = {label: fractional_deviation(s, baseline) for label, s in varied.items()}
    for label, series in deviations.items():
        n_undefined = int(series.undefined.sum())
        if n_undefined:
            logger.warning("Variation '%s' has %d bin(s) with an empty baseline", label, n_undefined)

    metadata = {
        **run_metadata(cfg, argv),
        "variable": cfg["variable"],
        "cut": cfg["cut"],
        "variations": {label: vs.label for label, vs in variations.items()},
        "pass": summary.to_dict(),
    }
    return AnalysisResult(
        baseline=baseline,
        variations=varied,
        deviations=deviations,
        summary=summary,
        metadata=metadata,
    )


def _event_columns(cfg: dict[str, Any]) -> dict[str, str | None]:
    events_cfg = cfg.get("events", {})
    return {
        "weight_column": events_cfg.get("weight_column"),
        "id_column": events_cfg.get("id_column"),
    }
