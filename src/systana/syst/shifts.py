"""Ordered (systematic, sigma) compositions describing one alternate universe."""

from __future__ import annotations

import math
from typing import Any, Iterable, Iterator, Mapping, MutableMapping

import numpy as np

from systana.core.config import ConfigurationError
from systana.core.registry import RegistryError, get_systematic
from systana.syst.base import Systematic, UndoContractError, UndoToken


class VariationSet:
    """Immutable ordered list of (Systematic, sigma) pairs; empty means nominal.

    Shifts apply in registration order and undo in exactly reverse order, each token
    going back to the systematic that produced it. When two systematics touch the
    same field the outcome depends on this order.
    """

    def __init__(self, shifts: Iterable[tuple[Systematic, float]] = ()) -> None:
        pairs: list[tuple[Systematic, float]] = []
        seen: set[str] = set()
        for syst, sigma in shifts:
            if not isinstance(syst, Systematic):
                raise ConfigurationError(f"{syst!r} does not implement apply/undo")
            if syst.name in seen:
                raise ConfigurationError(f"Systematic '{syst.name}' appears twice in one variation")
            sigma = float(sigma)
            if not math.isfinite(sigma):
                raise ConfigurationError(f"Sigma for '{syst.name}' must be finite, got {sigma}")
            seen.add(syst.name)
            pairs.append((syst, sigma))
        self._shifts = tuple(pairs)

    @classmethod
    def nominal(cls) -> "VariationSet":
        return cls()

    @classmethod
    def single(cls, syst: Systematic, sigma: float) -> "VariationSet":
        return cls([(syst, sigma)])

    @classmethod
    def from_config(cls, shifts: Mapping[str, float]) -> "VariationSet":
        """Resolve `{systematic_name: sigma}` through the systematic registry."""

        pairs = []
        for name, sigma in shifts.items():
            try:
                syst = get_systematic(name)
            except RegistryError as exc:
                raise ConfigurationError(str(exc)) from exc
            pairs.append((syst, sigma))
        return cls(pairs)

    @property
    def is_nominal(self) -> bool:
        return not self._shifts

    @property
    def shifts(self) -> tuple[tuple[Systematic, float], ...]:
        return self._shifts

    @property
    def names(self) -> list[str]:
        return [syst.name for syst, _ in self._shifts]

    @property
    def label(self) -> str:
        if not self._shifts:
            return "nominal"
        return ",".join(f"{syst.name}:{sigma:+g}" for syst, sigma in self._shifts)

    def __len__(self) -> int:
        return len(self._shifts)

    def __iter__(self) -> Iterator[tuple[Systematic, float]]:
        return iter(self._shifts)

    def __repr__(self) -> str:
        return f"VariationSet({self.label})"

    def apply(
        self,
        record: MutableMapping[str, Any],
        rng: np.random.Generator,
    ) -> tuple[list[UndoToken], float]:
        """Apply every shift in order; return the token chain and the net weight multiplier.

        If any shift fails, the shifts already applied are undone before the error
        propagates.
        """

        tokens: list[UndoToken] = []
        multiplier = 1.0
        try:
            for syst, sigma in self._shifts:
                token, factor = _checked(syst, syst.apply(sigma, record, rng))
                tokens.append(token)
                multiplier *= factor
        except BaseException:
            self._unwind(tokens, record)
            raise
        return tokens, multiplier

    def undo(self, tokens: list[UndoToken], record: MutableMapping[str, Any]) -> None:
        if len(tokens) != len(self._shifts):
            raise UndoContractError(
                f"Undo of {self.label} got {len(tokens)} tokens for {len(self._shifts)} shifts"
            )
        self._unwind(tokens, record)

    def _unwind(self, tokens: list[UndoToken], record: MutableMapping[str, Any]) -> None:
        applied = self._shifts[: len(tokens)]
        for (syst, _), token in zip(reversed(applied), reversed(tokens)):
            syst.undo(token, record)


def _checked(syst: Systematic, result: Any) -> tuple[UndoToken, float]:
    if not isinstance(result, tuple) or len(result) != 2:
        raise UndoContractError(f"'{syst.name}'.apply must return (UndoToken, weight), got {result!r}")
    token, factor = result
    if not isinstance(token, UndoToken):
        raise UndoContractError(f"'{syst.name}'.apply returned {type(token).__name__}, not an UndoToken")
    if token.syst_name != syst.name or token.consumed:
        raise UndoContractError(f"'{syst.name}'.apply returned an invalid token {token!r}")
    try:
        factor = float(factor)
    except (TypeError, ValueError) as exc:
        raise UndoContractError(f"'{syst.name}'.apply returned a non-numeric weight {factor!r}") from exc
    return token, factor
