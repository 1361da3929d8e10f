"""Fractional deviation of a varied spectrum from its baseline."""

from __future__ import annotations

import numpy as np

from systana.core.config import ConfigurationError
from systana.core.histogram import Histogrammer
from systana.core.spectrum import Spectrum
from systana.core.types import DeviationSeries


def fractional_deviation(
    varied: Spectrum | Histogrammer,
    baseline: Spectrum | Histogrammer,
) -> DeviationSeries:
    """`(varied - baseline) / baseline` per bin.

    Bins where both are empty read 0. Bins where only the baseline is empty are
    flagged undefined. Errors assume the two inputs are statistically independent,
    so comparing a spectrum with itself gives zero values with non-zero errors.
    """

    v_hist = _hist(varied)
    b_hist = _hist(baseline)
    if not v_hist.binning.same_as(b_hist.binning):
        raise ConfigurationError("Cannot compare spectra with different bin edges")

    v = v_hist.sums
    b = b_hist.sums
    v_w2 = v_hist.sumw2
    b_w2 = b_hist.sumw2

    empty_base = b == 0
    undefined = empty_base & (v != 0)
    safe_b = np.where(empty_base, 1.0, b)

    values = np.where(empty_base, 0.0, (v - b) / safe_b)
    values = np.where(undefined, np.nan, values)

    # d(v/b) = sqrt(sw2_v / b^2 + v^2 sw2_b / b^4)
    errors = np.sqrt(v_w2 / safe_b**2 + (v**2) * b_w2 / safe_b**4)
    errors = np.where(empty_base, np.where(undefined, np.nan, 0.0), errors)

    return DeviationSeries(
        edges=v_hist.edges.copy(),
        values=values,
        undefined=undefined,
        errors=errors,
    )


def deviation_table(deviations: dict[str, DeviationSeries]) -> list[dict[str, object]]:
    """Flatten named deviation series into rows of (label, bin, low, high, value, error, defined)."""

    rows: list[dict[str, object]] = []
    for label, series in deviations.items():
        for i in range(series.n_bins):
            rows.append(
                {
                    "variation": label,
                    "bin": i,
                    "low": float(series.edges[i]),
                    "high": float(series.edges[i + 1]),
                    "deviation": None if series.undefined[i] else float(series.values[i]),
                    "error": None if series.undefined[i] else float(series.errors[i]),
                    "defined": not bool(series.undefined[i]),
                }
            )
    return rows


def _hist(obj: Spectrum | Histogrammer) -> Histogrammer:
    if isinstance(obj, Spectrum):
        return obj.hist
    if isinstance(obj, Histogrammer):
        return obj
    raise TypeError(f"Expected a Spectrum or Histogrammer, got {type(obj).__name__}")
