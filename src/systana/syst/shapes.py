"""Built-in systematic shapes: deterministic scale, Gaussian smear, reweight, custom."""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, MutableMapping

import numpy as np

from systana.core.config import ConfigurationError
from systana.core.var import Cut
from systana.syst.base import UndoToken, restore_fields, scaled, shifted

SMEAR_MODES = ("mul", "add")


@dataclass(frozen=True)
class ScaleSyst:
    """`field *= 1 + k * sigma`."""

    name: str
    description: str
    field: str
    k: float

    def apply(
        self,
        sigma: float,
        record: MutableMapping[str, Any],
        rng: np.random.Generator,
    ) -> tuple[UndoToken, float]:
        del rng
        if sigma == 0:
            return UndoToken(self.name), 1.0
        token = UndoToken.capture(self.name, record, [self.field])
        record[self.field] = scaled(record[self.field], 1.0 + self.k * sigma)
        return token, 1.0

    def undo(self, token: UndoToken, record: MutableMapping[str, Any]) -> None:
        restore_fields(self, token, record)


@dataclass(frozen=True)
class SmearSyst:
    """Gaussian smear: `field *= 1 + sigma * draw` (mul) or `field += sigma * draw` (add).

    Every call draws afresh from the generator it is handed, one draw per element for
    sequence fields.
    """

    name: str
    description: str
    field: str
    width: float
    mean: float = 0.0
    mode: str = "mul"

    def __post_init__(self) -> None:
        if self.mode not in SMEAR_MODES:
            raise ConfigurationError(f"Unsupported smear mode '{self.mode}'. Supported: mul|add")
        if self.width < 0:
            raise ConfigurationError("Smear width must be non-negative")

    def apply(
        self,
        sigma: float,
        record: MutableMapping[str, Any],
        rng: np.random.Generator,
    ) -> tuple[UndoToken, float]:
        if sigma == 0:
            return UndoToken(self.name), 1.0
        token = UndoToken.capture(self.name, record, [self.field])
        value = record[self.field]
        shape = np.shape(value)
        draw = rng.normal(self.mean, self.width, size=shape) if shape else rng.normal(self.mean, self.width)
        if self.mode == "mul":
            record[self.field] = scaled(value, 1.0 + sigma * draw)
        else:
            record[self.field] = shifted(value, sigma * draw)
        return token, 1.0

    def undo(self, token: UndoToken, record: MutableMapping[str, Any]) -> None:
        restore_fields(self, token, record)


@dataclass(frozen=True)
class WeightSyst:
    """Reweight by `1 + k * sigma` for records passing `cut`; fields are left alone."""

    name: str
    description: str
    k: float
    cut: Cut | None = None

    def apply(
        self,
        sigma: float,
        record: MutableMapping[str, Any],
        rng: np.random.Generator,
    ) -> tuple[UndoToken, float]:
        del rng
        token = UndoToken(self.name)
        if sigma == 0:
            return token, 1.0
        if self.cut is not None and not self.cut(record):
            return token, 1.0
        return token, 1.0 + self.k * sigma

    def undo(self, token: UndoToken, record: MutableMapping[str, Any]) -> None:
        restore_fields(self, token, record)


ShiftFunc = Callable[[float, MutableMapping[str, Any], np.random.Generator], "float | None"]


@dataclass(frozen=True)
class FuncSyst:
    """Custom shift over declared fields.

    `func(sigma, record, rng)` may rewrite only `fields`; a float return value is
    taken as the weight multiplier.
    """

    name: str
    description: str
    fields: tuple[str, ...]
    func: ShiftFunc = dc_field(compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))

    def apply(
        self,
        sigma: float,
        record: MutableMapping[str, Any],
        rng: np.random.Generator,
    ) -> tuple[UndoToken, float]:
        if sigma == 0:
            return UndoToken(self.name), 1.0
        token = UndoToken.capture(self.name, record, self.fields)
        try:
            result = self.func(sigma, record, rng)
        except BaseException:
            token.restore(record)
            raise
        return token, 1.0 if result is None else float(result)

    def undo(self, token: UndoToken, record: MutableMapping[str, Any]) -> None:
        restore_fields(self, token, record)
