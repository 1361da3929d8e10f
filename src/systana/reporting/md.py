"""Markdown rendering of an analysis result."""

from __future__ import annotations

from typing import Any

from systana.core.types import AnalysisResult


def render_report_md(result: AnalysisResult, scale: float = 1.0) -> str:
    summary = result.summary
    meta = result.metadata
    lines = [
        "# Systematic variations",
        "",
        "## Run",
        f"- Variable: `{meta.get('variable')}`",
        f"- Cut: `{meta.get('cut')}`",
        f"- RNG seed: `{meta.get('random_seed')}`",
        f"- Config hash: `{meta.get('config_hash')}`",
        f"- Events: `{summary.n_events}`" + (" (cancelled)" if summary.cancelled else ""),
        f"- Shards: `{summary.n_shards}`",
        f"- Record faults: `{summary.total_faults}`",
        "",
    ]

    labels = list(result.variations)
    header = ["low", "high", "nominal"] + labels + [f"dev:{label}" for label in labels]
    lines.append("## Spectra")
    lines.append("")
    lines.append("| " + " | ".join(header) + " |")
    lines.append("|" + "---|" * len(header))
    base_rows = result.baseline.hist.bins()
    for i, (lo, hi, base_sum, _) in enumerate(base_rows):
        cells = [_fmt(lo), _fmt(hi), _fmt(base_sum * scale)]
        cells += [_fmt(result.variations[label].hist.sums[i] * scale) for label in labels]
        for label in labels:
            series = result.deviations[label]
            cells.append("undefined" if series.undefined[i] else f"{series.values[i]:+.4f}")
        lines.append("| " + " | ".join(cells) + " |")
    lines.append("")

    faulty = [s for s in summary.spectra if s.faults]
    if faulty:
        lines.append("## Record faults")
        lines.append("")
        for st in faulty:
            lines.append(f"- `{st.label}`: {st.faults} skipped; first events {st.fault_events}")
        lines.append("")
    return "\n".join(lines)


def _fmt(v: Any) -> str:
    try:
        return f"{float(v):.6g}"
    except (TypeError, ValueError):
        return str(v)
