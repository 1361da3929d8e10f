"""Reproducibility metadata attached to every analysis result."""

from __future__ import annotations

import hashlib
import importlib.metadata
import json
from pathlib import Path
from typing import Any

STACK = ("numpy", "pandas", "pyarrow", "PyYAML", "systana")


def stack_versions() -> dict[str, str]:
    out: dict[str, str] = {}
    for name in STACK:
        try:
            out[name] = importlib.metadata.version(name)
        except importlib.metadata.PackageNotFoundError:
            out[name] = "0.0.0+local" if name == "systana" else "not-installed"
    return out


def config_digest(cfg: dict[str, Any]) -> str:
    """sha256 of the resolved config, independent of key order."""

    canonical = json.dumps(cfg, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def events_digest(path: str | Path, chunk_size: int = 1 << 20) -> str:
    h = hashlib.sha256()
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def run_metadata(cfg: dict[str, Any], argv: list[str] | None = None) -> dict[str, Any]:
    return {
        "random_seed": int(cfg["seed"]),
        "config_hash": config_digest(cfg),
        "package_versions": stack_versions(),
        "cli_invocation": " ".join(argv or []),
    }
