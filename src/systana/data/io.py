"""Tabular event input: one row per event, one column per record field."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import numpy as np
import pandas as pd

from systana.core.config import ConfigurationError
from systana.core.record import Record

SUPPORTED_SUFFIXES = (".parquet", ".csv")


class EventIOError(FileNotFoundError):
    """Raised when an event table is missing or unreadable."""


def load_events(path: str | Path) -> pd.DataFrame:
    p = Path(path)
    if not p.exists():
        raise EventIOError(f"Event table does not exist: {p}")
    suffix = p.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(p)
    if suffix == ".csv":
        return pd.read_csv(p)
    raise EventIOError(
        f"Unsupported event table format '{p.suffix}'. Supported: {', '.join(SUPPORTED_SUFFIXES)}"
    )


def iter_records(
    events: pd.DataFrame,
    weight_column: str | None = None,
    id_column: str | None = None,
) -> Iterator[Record]:
    """Lazily yield one fresh Record per row.

    The weight and id columns, when named, feed the record's base weight and event id
    and are kept out of its fields. Without an id column the row's index label is the
    event id, so rows of a partition keep the ids they had in the full table.
    """

    for col in (weight_column, id_column):
        if col is not None and col not in events.columns:
            raise ConfigurationError(f"Event table has no column '{col}'")

    return _rows(events, weight_column, id_column)


def _rows(events: pd.DataFrame, weight_column: str | None, id_column: str | None) -> Iterator[Record]:
    field_cols = [c for c in events.columns if c not in {weight_column, id_column}]
    weights = events[weight_column].to_numpy(dtype=float) if weight_column else None
    ids = events[id_column].tolist() if id_column else None
    labels = events.index.tolist()
    columns = {c: events[c].tolist() for c in field_cols}

    for i in range(events.shape[0]):
        fields = {c: _plain(columns[c][i]) for c in field_cols}
        yield Record(
            fields,
            weight=1.0 if weights is None else float(weights[i]),
            event_id=labels[i] if ids is None else ids[i],
        )


def partition(events: pd.DataFrame, n: int) -> list[pd.DataFrame]:
    """Split rows into `n` contiguous, order-preserving partitions."""

    if n < 1:
        raise ValueError("partition count must be positive")
    bounds = np.linspace(0, events.shape[0], n + 1).astype(int)
    return [events.iloc[lo:hi] for lo, hi in zip(bounds[:-1], bounds[1:])]


def _plain(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value
