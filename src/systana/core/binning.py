"""Bin edge definitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from systana.core.config import ConfigurationError


@dataclass(frozen=True, eq=False)
class Binning:
    edges: np.ndarray

    def __post_init__(self) -> None:
        arr = np.asarray(self.edges, dtype=float)
        if arr.ndim != 1 or arr.size < 2:
            raise ConfigurationError("Binning needs at least two edges (one bin)")
        if not np.all(np.isfinite(arr)):
            raise ConfigurationError("Bin edges must be finite")
        if np.any(np.diff(arr) <= 0):
            raise ConfigurationError(f"Bin edges must be strictly increasing: {arr.tolist()}")
        arr.setflags(write=False)
        object.__setattr__(self, "edges", arr)

    @classmethod
    def simple(cls, n: int, lo: float, hi: float) -> "Binning":
        if int(n) != n or n < 1:
            raise ConfigurationError(f"Binning.simple needs a positive bin count, got {n!r}")
        if not hi > lo:
            raise ConfigurationError(f"Binning.simple needs hi > lo, got lo={lo} hi={hi}")
        return cls(np.linspace(float(lo), float(hi), int(n) + 1))

    @classmethod
    def custom(cls, edges: Sequence[float]) -> "Binning":
        return cls(np.asarray(list(edges), dtype=float))

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> "Binning":
        if cfg.get("edges") is not None:
            return cls.custom(cfg["edges"])
        return cls.simple(cfg["n"], cfg["lo"], cfg["hi"])

    @property
    def n_bins(self) -> int:
        return int(self.edges.size - 1)

    @property
    def lo(self) -> float:
        return float(self.edges[0])

    @property
    def hi(self) -> float:
        return float(self.edges[-1])

    def find_bin(self, value: float) -> int:
        """Bin index for `value`; -1 for underflow and `n_bins` for overflow."""

        if value < self.edges[0]:
            return -1
        if value >= self.edges[-1]:
            return self.n_bins
        return int(np.searchsorted(self.edges, value, side="right")) - 1

    def same_as(self, other: "Binning") -> bool:
        return self.edges.shape == other.edges.shape and bool(np.array_equal(self.edges, other.edges))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Binning) and self.same_as(other)

    def __hash__(self) -> int:
        return hash(self.edges.tobytes())
