"""Per-event record and copy-on-write views over it."""

from __future__ import annotations

import copy
import math
from typing import Any, Iterator, Mapping, MutableMapping

import numpy as np


class RecordFaultError(KeyError):
    """Raised when a record cannot supply a field a callable asked for."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "record fault"


_MISSING = object()


def detached(value: Any) -> Any:
    """Shallow copy of a mutable container field; immutable values pass through."""

    if isinstance(value, np.ndarray):
        return value.copy()
    if isinstance(value, (list, dict, set, bytearray)):
        return copy.copy(value)
    return value


class Record(MutableMapping[str, Any]):
    """Mutable bag of named per-event fields plus a base event weight."""

    def __init__(
        self,
        fields: Mapping[str, Any] | None = None,
        weight: float = 1.0,
        event_id: Any = None,
    ) -> None:
        self._fields: dict[str, Any] = dict(fields or {})
        self.weight = float(weight)
        self.event_id = event_id

    def __getitem__(self, name: str) -> Any:
        try:
            return self._fields[name]
        except KeyError:
            raise RecordFaultError(f"Record {self.event_id!r} has no field '{name}'") from None

    def __setitem__(self, name: str, value: Any) -> None:
        self._fields[name] = value

    def __delitem__(self, name: str) -> None:
        del self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Record(id={self.event_id!r}, weight={self.weight}, fields={self._fields!r})"

    def snapshot(self) -> dict[str, Any]:
        return dict(self._fields)

    @classmethod
    def coerce(cls, raw: "Record | Mapping[str, Any]", index: Any) -> "Record":
        """Wrap a plain mapping into a Record; event ids default to the stream position."""

        if isinstance(raw, Record):
            if raw.event_id is None:
                raw.event_id = index
            return raw
        if isinstance(raw, Mapping):
            return cls(raw, event_id=index)
        raise TypeError(f"Event {index} is a {type(raw).__name__}, expected a Record or mapping")


class RecordView(MutableMapping[str, Any]):
    """Overlay over a canonical record.

    Writes land in the overlay only, and container fields are copied into it on first
    read, so the canonical record is never mutated.
    """

    def __init__(self, base: Record) -> None:
        self._base = base
        self._overlay: dict[str, Any] = {}

    @property
    def weight(self) -> float:
        return self._base.weight

    @property
    def event_id(self) -> Any:
        return self._base.event_id

    def __getitem__(self, name: str) -> Any:
        value = self._overlay.get(name, _MISSING)
        if value is not _MISSING:
            return value
        value = self._base[name]
        # mutable containers are copied into the overlay on first read
        local = detached(value)
        if local is not value:
            self._overlay[name] = local
        return local

    def __setitem__(self, name: str, value: Any) -> None:
        self._overlay[name] = value

    def __delitem__(self, name: str) -> None:
        raise TypeError("Fields cannot be deleted through a RecordView")

    def __iter__(self) -> Iterator[str]:
        return iter(self._base)

    def __len__(self) -> int:
        return len(self._base)

    def __repr__(self) -> str:
        return f"RecordView(id={self.event_id!r}, overlay={self._overlay!r})"

    def touched(self) -> list[str]:
        return sorted(self._overlay)

    def dirty_fields(self) -> list[str]:
        """Overlaid field names whose value no longer matches the base record."""

        dirty = []
        for name, value in self._overlay.items():
            if not same_value(value, self._base._fields.get(name, _MISSING)):
                dirty.append(name)
        return sorted(dirty)


def same_value(a: Any, b: Any) -> bool:
    """Exact equality: identical objects, bit-equal floats, or element-equal arrays."""

    if a is b:
        return True
    if a is _MISSING or b is _MISSING:
        return False
    if isinstance(a, float) and isinstance(b, float):
        if math.isnan(a) and math.isnan(b):
            return True
        return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        a_arr, b_arr = np.asarray(a), np.asarray(b)
        if a_arr.shape != b_arr.shape or a_arr.dtype != b_arr.dtype:
            return False
        return bool(np.array_equal(a_arr, b_arr, equal_nan=a_arr.dtype.kind in "fc"))
    if type(a) is not type(b):
        return False
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        return False
