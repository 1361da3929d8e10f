"""Single-pass systematic-variation spectra."""

from systana.core.binning import Binning
from systana.core.config import ConfigurationError
from systana.core.histogram import FrozenHistogramError, Histogrammer
from systana.core.loader import SpectrumLoader
from systana.core.record import Record, RecordFaultError
from systana.core.spectrum import Spectrum
from systana.core.types import DeviationSeries, PassSummary
from systana.core.var import NO_CUT, Cut, Var, field_var
from systana.ops.compare import fractional_deviation
from systana.syst.base import Systematic, UndoContractError, UndoToken
from systana.syst.shapes import FuncSyst, ScaleSyst, SmearSyst, WeightSyst
from systana.syst.shifts import VariationSet

__all__ = [
    "Binning",
    "ConfigurationError",
    "Cut",
    "DeviationSeries",
    "FrozenHistogramError",
    "FuncSyst",
    "Histogrammer",
    "NO_CUT",
    "PassSummary",
    "Record",
    "RecordFaultError",
    "ScaleSyst",
    "SmearSyst",
    "Spectrum",
    "SpectrumLoader",
    "Systematic",
    "UndoContractError",
    "UndoToken",
    "Var",
    "VariationSet",
    "WeightSyst",
    "field_var",
    "fractional_deviation",
]
