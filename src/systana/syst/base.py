"""Systematic protocol and the undo bookkeeping shared by every shift shape."""

from __future__ import annotations

from typing import Any, Iterable, MutableMapping, Protocol, runtime_checkable

import numpy as np

from systana.core.record import detached


class UndoContractError(RuntimeError):
    """Raised when a shift cannot be reverted exactly; aborts the pass."""


class UndoToken:
    """Prior field values captured by one systematic, consumed by exactly one undo."""

    __slots__ = ("syst_name", "_saved", "_consumed")

    def __init__(self, syst_name: str, saved: dict[str, Any] | None = None) -> None:
        self.syst_name = syst_name
        self._saved = dict(saved or {})
        self._consumed = False

    @classmethod
    def capture(
        cls,
        syst_name: str,
        record: MutableMapping[str, Any],
        fields: Iterable[str],
    ) -> "UndoToken":
        return cls(syst_name, {name: detached(record[name]) for name in fields})

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self._saved)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def restore(self, record: MutableMapping[str, Any]) -> None:
        if self._consumed:
            raise UndoContractError(f"Undo token of '{self.syst_name}' was already consumed")
        for name, value in self._saved.items():
            record[name] = value
        self._consumed = True

    def __repr__(self) -> str:
        return f"UndoToken({self.syst_name!r}, fields={list(self._saved)}, consumed={self._consumed})"


@runtime_checkable
class Systematic(Protocol):
    name: str
    description: str

    def apply(
        self,
        sigma: float,
        record: MutableMapping[str, Any],
        rng: np.random.Generator,
    ) -> tuple[UndoToken, float]:
        """Shift `record` in place; return the undo token and a weight multiplier."""

    def undo(self, token: UndoToken, record: MutableMapping[str, Any]) -> None:
        """Restore the fields captured in `token`."""


def restore_fields(syst: Systematic, token: UndoToken, record: MutableMapping[str, Any]) -> None:
    if not isinstance(token, UndoToken):
        raise UndoContractError(f"'{syst.name}' was handed {type(token).__name__}, not an UndoToken")
    if token.syst_name != syst.name:
        raise UndoContractError(
            f"Undo token of '{token.syst_name}' handed back to '{syst.name}'"
        )
    token.restore(record)


def scaled(value: Any, factor: Any) -> Any:
    """Multiply a scalar or a sequence field, returning a new object."""

    if isinstance(value, np.ndarray):
        return value * factor
    if isinstance(value, (list, tuple)):
        factors = np.broadcast_to(np.asarray(factor, dtype=float), (len(value),))
        return type(value)(float(v) * float(f) for v, f in zip(value, factors))
    return float(value) * float(factor)


def shifted(value: Any, offset: Any) -> Any:
    """Add to a scalar or a sequence field, returning a new object."""

    if isinstance(value, np.ndarray):
        return value + offset
    if isinstance(value, (list, tuple)):
        offsets = np.broadcast_to(np.asarray(offset, dtype=float), (len(value),))
        return type(value)(float(v) + float(o) for v, o in zip(value, offsets))
    return float(value) + float(offset)

