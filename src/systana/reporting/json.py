"""Structured payload of an analysis result."""

from __future__ import annotations

from typing import Any

from systana.core.histogram import Histogrammer
from systana.core.types import AnalysisResult
from systana.ops.compare import deviation_table


def build_report_payload(result: AnalysisResult, scale: float = 1.0) -> dict[str, Any]:
    return {
        "metadata": result.metadata,
        "pass": result.summary.to_dict(),
        "spectra": {
            "nominal": _hist_payload(result.baseline.hist, scale),
            **{label: _hist_payload(s.hist, scale) for label, s in result.variations.items()},
        },
        "deviations": deviation_table(result.deviations),
    }


def _hist_payload(hist: Histogrammer, scale: float) -> dict[str, Any]:
    return {
        "bins": hist.to_frame(scale=scale).to_dict(orient="records"),
        "underflow": hist.underflow * scale,
        "overflow": hist.overflow * scale,
        "entries": hist.n_entries,
    }
