"""Spectrum: a variable, a cut and a variation bound to one histogram."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from systana.core.binning import Binning
from systana.core.histogram import Histogrammer
from systana.core.record import RecordFaultError
from systana.core.var import NO_CUT, Cut, Var
from systana.syst.shifts import VariationSet


@dataclass(eq=False)
class Spectrum:
    var: Var
    binning: Binning
    cut: Cut = NO_CUT
    shifts: VariationSet = field(default_factory=VariationSet.nominal)
    label: str | None = None
    hist: Histogrammer = field(init=False)

    def __post_init__(self) -> None:
        self.hist = Histogrammer(self.binning)
        if self.label is None:
            self.label = self.shifts.label

    @property
    def is_nominal(self) -> bool:
        return self.shifts.is_nominal

    @property
    def frozen(self) -> bool:
        return self.hist.frozen

    def fill_from(self, record: Mapping[str, Any], weight: float) -> bool:
        """Evaluate cut and variable on an already-shifted record; return whether it filled."""

        if not self.cut(record):
            return False
        value = self.var(record)
        if not math.isfinite(value):
            raise RecordFaultError(f"Variable '{self.var.name}' is {value} for event {_event_id(record)!r}")
        self.hist.fill(value, weight)
        return True

    def fresh_copy(self) -> "Spectrum":
        """Same definition, empty histogram."""

        return Spectrum(var=self.var, binning=self.binning, cut=self.cut, shifts=self.shifts, label=self.label)

    def __repr__(self) -> str:
        return f"Spectrum({self.label!r}, var={self.var.name!r}, cut={self.cut.name!r}, hist={self.hist!r})"


def _event_id(record: Mapping[str, Any]) -> Any:
    return getattr(record, "event_id", None)
