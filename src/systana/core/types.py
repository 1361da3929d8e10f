"""Result types shared across the aggregation, comparison and reporting stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from systana.core.spectrum import Spectrum


@dataclass
class SpectrumStats:
    """Per-spectrum bookkeeping for one pass."""

    label: str
    fills: int = 0
    faults: int = 0
    fault_events: list[Any] = field(default_factory=list)
    fault_messages: list[str] = field(default_factory=list)
    max_reported: int = 5

    def record_fault(self, event_id: Any, exc: BaseException) -> None:
        self.faults += 1
        if len(self.fault_events) < self.max_reported:
            self.fault_events.append(event_id)
            self.fault_messages.append(str(exc))

    def merged(self, other: "SpectrumStats") -> "SpectrumStats":
        room = max(self.max_reported - len(self.fault_events), 0)
        return SpectrumStats(
            label=self.label,
            fills=self.fills + other.fills,
            faults=self.faults + other.faults,
            fault_events=self.fault_events + other.fault_events[:room],
            fault_messages=self.fault_messages + other.fault_messages[:room],
            max_reported=self.max_reported,
        )


@dataclass(frozen=True)
class PassSummary:
    n_events: int
    cancelled: bool
    spectra: tuple[SpectrumStats, ...]
    n_shards: int = 1

    @property
    def total_faults(self) -> int:
        return sum(s.faults for s in self.spectra)

    def to_dict(self) -> dict[str, Any]:
        return {
            "n_events": self.n_events,
            "cancelled": self.cancelled,
            "n_shards": self.n_shards,
            "total_faults": self.total_faults,
            "spectra": [
                {
                    "label": s.label,
                    "fills": s.fills,
                    "faults": s.faults,
                    "fault_events": [_plain(e) for e in s.fault_events],
                    "fault_messages": list(s.fault_messages),
                }
                for s in self.spectra
            ],
        }


@dataclass(frozen=True)
class DeviationSeries:
    """Per-bin fractional deviation of a varied spectrum from its baseline.

    `undefined[i]` is True where the baseline bin is empty but the varied bin is not;
    `values[i]` is NaN there and must not be used.
    """

    edges: np.ndarray
    values: np.ndarray
    undefined: np.ndarray
    errors: np.ndarray

    @property
    def n_bins(self) -> int:
        return int(self.values.size)

    @property
    def defined(self) -> np.ndarray:
        return ~self.undefined

    def is_defined(self, i: int) -> bool:
        return not bool(self.undefined[i])

    def value(self, i: int) -> float:
        if self.undefined[i]:
            raise ValueError(f"Deviation in bin {i} is undefined (empty baseline, non-empty variation)")
        return float(self.values[i])

    def max_abs(self) -> float:
        vals = self.values[self.defined]
        return float(np.max(np.abs(vals))) if vals.size else 0.0


@dataclass(frozen=True)
class AnalysisResult:
    baseline: "Spectrum"
    variations: dict[str, "Spectrum"]
    deviations: dict[str, DeviationSeries]
    summary: PassSummary
    metadata: dict[str, Any]


def _plain(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value
