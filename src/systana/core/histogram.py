"""Weighted fixed-bin accumulation."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd

from systana.core.binning import Binning
from systana.core.config import ConfigurationError


class FrozenHistogramError(RuntimeError):
    """Raised when a histogram is filled after its pass has ended."""


class Histogrammer:
    """Per-bin weighted sums and sums of squares over a fixed binning.

    Bins are right-open `[edge_i, edge_{i+1})`. Values below the first edge go to
    underflow and values at or above the last edge go to overflow.
    """

    def __init__(self, binning: Binning) -> None:
        self.binning = binning
        n = binning.n_bins
        self._sumw = np.zeros(n, dtype=float)
        self._sumw2 = np.zeros(n, dtype=float)
        self._entries = np.zeros(n, dtype=np.int64)
        self._under = np.zeros(2, dtype=float)  # sumw, sumw2
        self._over = np.zeros(2, dtype=float)
        self.n_underflow = 0
        self.n_overflow = 0
        self._frozen = False

    @property
    def edges(self) -> np.ndarray:
        return self.binning.edges

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True
        for arr in (self._sumw, self._sumw2, self._entries, self._under, self._over):
            arr.setflags(write=False)

    def fill(self, value: float, weight: float = 1.0) -> int:
        if self._frozen:
            raise FrozenHistogramError("Histogram is frozen; fills are only allowed during a pass")
        value = float(value)
        if math.isnan(value):
            raise ValueError("Cannot fill NaN into a histogram")
        w = float(weight)
        idx = self.binning.find_bin(value)
        if idx < 0:
            self._under += (w, w * w)
            self.n_underflow += 1
        elif idx >= self.binning.n_bins:
            self._over += (w, w * w)
            self.n_overflow += 1
        else:
            self._sumw[idx] += w
            self._sumw2[idx] += w * w
            self._entries[idx] += 1
        return idx

    @property
    def sums(self) -> np.ndarray:
        return self._sumw.copy()

    @property
    def sumw2(self) -> np.ndarray:
        return self._sumw2.copy()

    @property
    def entries(self) -> np.ndarray:
        return self._entries.copy()

    @property
    def underflow(self) -> float:
        return float(self._under[0])

    @property
    def overflow(self) -> float:
        return float(self._over[0])

    @property
    def n_entries(self) -> int:
        return int(self._entries.sum()) + self.n_underflow + self.n_overflow

    def integral(self) -> float:
        return float(self._sumw.sum())

    def errors(self) -> np.ndarray:
        return np.sqrt(self._sumw2)

    def bins(self) -> list[tuple[float, float, float, float]]:
        """Ordered (low_edge, high_edge, sum, sum_of_squares) tuples."""

        edges = self.binning.edges
        return [
            (float(edges[i]), float(edges[i + 1]), float(self._sumw[i]), float(self._sumw2[i]))
            for i in range(self.binning.n_bins)
        ]

    def merge(self, other: "Histogrammer") -> "Histogrammer":
        """Point-wise sum of two histograms with identical binning."""

        if not self.binning.same_as(other.binning):
            raise ConfigurationError("Cannot merge histograms with different bin edges")
        out = Histogrammer(self.binning)
        out._sumw += self._sumw + other._sumw
        out._sumw2 += self._sumw2 + other._sumw2
        out._entries += self._entries + other._entries
        out._under += self._under + other._under
        out._over += self._over + other._over
        out.n_underflow = self.n_underflow + other.n_underflow
        out.n_overflow = self.n_overflow + other.n_overflow
        return out

    def to_frame(self, scale: float = 1.0) -> pd.DataFrame:
        """Bin table; `scale` rescales a copy (e.g. to an exposure) and never the histogram."""

        edges = self.binning.edges
        return pd.DataFrame(
            {
                "low": edges[:-1],
                "high": edges[1:],
                "sum": self._sumw * scale,
                "sumw2": self._sumw2 * scale * scale,
                "entries": self._entries,
            }
        )

    def __repr__(self) -> str:
        return (
            f"Histogrammer(bins={self.binning.n_bins}, integral={self.integral():.6g}, "
            f"underflow={self.underflow:.6g}, overflow={self.overflow:.6g}, frozen={self._frozen})"
        )
