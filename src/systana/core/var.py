"""Variables (record -> float) and cuts (record -> bool)."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from systana.core.record import RecordFaultError

_EVAL_FAULTS = (KeyError, IndexError, TypeError, ValueError, ArithmeticError)


@dataclass(frozen=True, eq=False)
class Var:
    """Pure read function from a record to a scalar."""

    func: Callable[[Mapping[str, Any]], float]
    name: str = "var"

    def __call__(self, record: Mapping[str, Any]) -> float:
        try:
            return float(self.func(record))
        except RecordFaultError:
            raise
        except _EVAL_FAULTS as exc:
            raise RecordFaultError(f"Variable '{self.name}' failed: {exc!r}") from exc

    def _compare(self, other: "Var | float", op: Callable[[float, float], bool], sym: str) -> "Cut":
        if isinstance(other, Var):
            rhs = other
            label = f"{self.name} {sym} {other.name}"
            return Cut(lambda r: op(self(r), rhs(r)), label)
        value = float(other)
        return Cut(lambda r: op(self(r), value), f"{self.name} {sym} {value:g}")

    def __gt__(self, other: "Var | float") -> "Cut":
        return self._compare(other, operator.gt, ">")

    def __ge__(self, other: "Var | float") -> "Cut":
        return self._compare(other, operator.ge, ">=")

    def __lt__(self, other: "Var | float") -> "Cut":
        return self._compare(other, operator.lt, "<")

    def __le__(self, other: "Var | float") -> "Cut":
        return self._compare(other, operator.le, "<=")

    def within(self, lo: float, hi: float) -> "Cut":
        """Half-open window [lo, hi)."""

        return (self >= lo) & (self < hi)


@dataclass(frozen=True, eq=False)
class Cut:
    """Pure predicate on a record, composable with &, | and ~."""

    func: Callable[[Mapping[str, Any]], bool]
    name: str = "cut"

    def __call__(self, record: Mapping[str, Any]) -> bool:
        try:
            return bool(self.func(record))
        except RecordFaultError:
            raise
        except _EVAL_FAULTS as exc:
            raise RecordFaultError(f"Cut '{self.name}' failed: {exc!r}") from exc

    def __and__(self, other: "Cut") -> "Cut":
        lhs, rhs = self, other
        return Cut(lambda r: lhs(r) and rhs(r), f"({lhs.name} && {rhs.name})")

    def __or__(self, other: "Cut") -> "Cut":
        lhs, rhs = self, other
        return Cut(lambda r: lhs(r) or rhs(r), f"({lhs.name} || {rhs.name})")

    def __invert__(self) -> "Cut":
        inner = self
        return Cut(lambda r: not inner(r), f"!{inner.name}")


def field_var(field: str, name: str | None = None) -> Var:
    return Var(lambda r: r[field], name or field)


NO_CUT = Cut(lambda r: True, "all")
