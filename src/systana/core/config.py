"""Analysis configuration loading and resolution."""

from __future__ import annotations

from copy import deepcopy
from numbers import Real
from pathlib import Path
from typing import Any

import yaml


class ConfigurationError(ValueError):
    """Raised at setup time when an analysis definition is invalid."""


DEFAULT_CONFIG: dict[str, Any] = {
    "binning": {
        "n": 40,
        "lo": 0.0,
        "hi": 10.0,
        "edges": None,
    },
    "variable": "reco_qe_energy",
    "cut": "cc0pi_reco",
    "events": {
        "weight_column": None,
        "id_column": None,
    },
    "variations": {},
    "faults": {
        "max_reported": 5,
    },
    "shards": {
        "n": 1,
        "max_workers": None,
    },
    "seed": 42,
}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries and return a new dictionary."""

    out = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Config file not found: {p}")
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config must be a mapping at root: {p}")
    return data


def resolve_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Resolve analysis configuration from defaults, an optional YAML file and overrides."""

    resolved = deepcopy(DEFAULT_CONFIG)
    if config_path is not None:
        resolved = deep_merge(resolved, load_yaml(config_path))
    if overrides:
        resolved = deep_merge(resolved, overrides)
    validate_config(resolved)
    return resolved


def dump_yaml(data: dict[str, Any], out_path: str | Path) -> None:
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)


def validate_config(cfg: dict[str, Any]) -> None:
    binning = cfg.get("binning")
    if not isinstance(binning, dict):
        raise ConfigurationError("binning must be a mapping")
    if binning.get("edges") is None:
        for key in ("n", "lo", "hi"):
            if not isinstance(binning.get(key), Real):
                raise ConfigurationError(f"binning.{key} must be numeric when binning.edges is unset")
    elif not isinstance(binning["edges"], list):
        raise ConfigurationError("binning.edges must be a list of numbers")

    for key in ("variable", "cut"):
        if not isinstance(cfg.get(key), str) or not cfg[key].strip():
            raise ConfigurationError(f"'{key}' must name a registered {key}")

    variations = cfg.get("variations")
    if not isinstance(variations, dict):
        raise ConfigurationError("variations must map a label to {systematic: sigma}")
    for label, shifts in variations.items():
        if not isinstance(shifts, dict):
            raise ConfigurationError(f"variations.{label} must map systematic names to sigma")
        for syst_name, sigma in shifts.items():
            if not isinstance(sigma, Real) or isinstance(sigma, bool):
                raise ConfigurationError(
                    f"variations.{label}.{syst_name} must be a number, got {sigma!r}"
                )

    max_reported = cfg.get("faults", {}).get("max_reported")
    if not isinstance(max_reported, int) or max_reported < 0:
        raise ConfigurationError("faults.max_reported must be a non-negative integer")

    n_shards = cfg.get("shards", {}).get("n")
    if not isinstance(n_shards, int) or n_shards < 1:
        raise ConfigurationError("shards.n must be a positive integer")

    if not isinstance(cfg.get("seed"), int):
        raise ConfigurationError("seed must be an integer")
