"""Single-pass filling of many spectra from one event stream."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Mapping, Sequence, Sized

import numpy as np

from systana.core.binning import Binning
from systana.core.config import ConfigurationError
from systana.core.record import Record, RecordFaultError, RecordView
from systana.core.spectrum import Spectrum
from systana.core.types import PassSummary, SpectrumStats
from systana.core.var import NO_CUT, Cut, Var
from systana.syst.base import UndoContractError
from systana.syst.shifts import VariationSet

logger = logging.getLogger(__name__)

EventStream = Iterable["Record | Mapping[str, Any]"]


class LoaderError(RuntimeError):
    """Raised when a loader is driven outside its one-shot lifecycle."""


class SpectrumLoader:
    """Drives exactly one traversal of an event stream for every registered spectrum.

    Per event one Record is materialized. Each spectrum sees it through its own
    copy-on-write view: the spectrum's variation is applied to the view, the cut and
    variable are evaluated, the histogram is filled and the variation is undone
    before the next spectrum. The canonical record is never mutated.
    """

    def __init__(
        self,
        events: EventStream | None = None,
        rng: np.random.Generator | None = None,
        max_reported_faults: int = 5,
    ) -> None:
        self._events = events
        self.rng = rng or np.random.default_rng(0)
        self.max_reported_faults = int(max_reported_faults)
        self._spectra: list[Spectrum] = []
        self._done = False
        self._cancel_requested = False

    @property
    def spectra(self) -> tuple[Spectrum, ...]:
        return tuple(self._spectra)

    @property
    def done(self) -> bool:
        return self._done

    def add(self, spectrum: Spectrum) -> Spectrum:
        if self._done:
            raise ConfigurationError("Spectra must be registered before the pass starts")
        if spectrum.frozen:
            raise ConfigurationError(f"Spectrum {spectrum.label!r} was already filled by another pass")
        if any(s is spectrum for s in self._spectra):
            raise ConfigurationError(f"Spectrum {spectrum.label!r} is already registered")
        self._spectra.append(spectrum)
        return spectrum

    def spectrum(
        self,
        var: Var,
        binning: Binning,
        cut: Cut = NO_CUT,
        shifts: VariationSet | None = None,
        label: str | None = None,
    ) -> Spectrum:
        return self.add(
            Spectrum(var=var, binning=binning, cut=cut, shifts=shifts or VariationSet.nominal(), label=label)
        )

    def cancel(self) -> None:
        """Stop at the next event boundary."""

        self._cancel_requested = True

    def go(self) -> PassSummary:
        if self._events is None:
            raise LoaderError("No event stream was given; use go_sharded() with partitions")
        self._start()
        stats = self._new_stats()
        logger.info("Filling %d spectra in one pass", len(self._spectra))
        n_events, cancelled = self._traverse(self._events, self._spectra, self.rng, stats)
        return self._finish(n_events, cancelled, stats, n_shards=1)

    def go_sharded(
        self,
        partitions: Sequence[EventStream],
        max_workers: int | None = None,
    ) -> PassSummary:
        """One independent traversal per partition, merged bin by bin afterwards.

        Each shard gets fresh records, fresh histograms and its own child generator
        spawned from the loader's generator.
        """

        self._start()
        if not partitions:
            raise LoaderError("go_sharded needs at least one partition")
        rngs = self.rng.spawn(len(partitions))
        offsets = _shard_offsets(partitions)
        workers = _resolve_workers(len(partitions), max_workers)
        logger.info(
            "Filling %d spectra over %d shards with %d workers",
            len(self._spectra),
            len(partitions),
            workers,
        )

        def run_shard(i: int) -> tuple[list[Spectrum], list[SpectrumStats], int, bool]:
            shard_spectra = [s.fresh_copy() for s in self._spectra]
            shard_stats = self._new_stats()
            if offsets is None:
                n, cancelled = self._traverse(partitions[i], shard_spectra, rngs[i], shard_stats, shard=i)
            else:
                n, cancelled = self._traverse(
                    partitions[i], shard_spectra, rngs[i], shard_stats, first_id=offsets[i]
                )
            logger.debug("Shard %d finished after %d events", i, n)
            return shard_spectra, shard_stats, n, cancelled

        if workers == 1:
            results = [run_shard(i) for i in range(len(partitions))]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(run_shard, range(len(partitions))))

        stats = self._new_stats()
        n_events = 0
        cancelled = False
        for shard_spectra, shard_stats, n, shard_cancelled in results:
            for target, part in zip(self._spectra, shard_spectra):
                target.hist = target.hist.merge(part.hist)
            stats = [a.merged(b) for a, b in zip(stats, shard_stats)]
            n_events += n
            cancelled = cancelled or shard_cancelled
        return self._finish(n_events, cancelled, stats, n_shards=len(partitions))

    def _start(self) -> None:
        if self._done:
            raise LoaderError("This loader already ran; event streams are consumed once")
        if not self._spectra:
            raise ConfigurationError("No spectra registered")
        self._done = True

    def _new_stats(self) -> list[SpectrumStats]:
        return [SpectrumStats(label=str(s.label), max_reported=self.max_reported_faults) for s in self._spectra]

    def _traverse(
        self,
        events: EventStream,
        spectra: Sequence[Spectrum],
        rng: np.random.Generator,
        stats: Sequence[SpectrumStats],
        first_id: int = 0,
        shard: int | None = None,
    ) -> tuple[int, bool]:
        """Fill `spectra` from `events`; return the event count and whether it was cancelled.

        Events without an id get their position in the full stream, or `(shard, position)`
        when the shard sizes are not known up front.
        """

        n = 0
        for raw in events:
            if self._cancel_requested:
                logger.warning("Pass cancelled after %d events", n)
                return n, True
            record = Record.coerce(raw, first_id + n if shard is None else (shard, n))
            for spectrum, st in zip(spectra, stats):
                _process(spectrum, record, rng, st)
            n += 1
        return n, False

    def _finish(
        self,
        n_events: int,
        cancelled: bool,
        stats: list[SpectrumStats],
        n_shards: int,
    ) -> PassSummary:
        for spectrum in self._spectra:
            spectrum.hist.freeze()
        summary = PassSummary(n_events=n_events, cancelled=cancelled, spectra=tuple(stats), n_shards=n_shards)
        _log_summary(summary)
        return summary


def _process(spectrum: Spectrum, record: Record, rng: np.random.Generator, st: SpectrumStats) -> None:
    if spectrum.shifts.is_nominal:
        try:
            if spectrum.fill_from(record, record.weight):
                st.fills += 1
        except RecordFaultError as exc:
            st.record_fault(record.event_id, exc)
        return

    view = RecordView(record)
    try:
        tokens, multiplier = spectrum.shifts.apply(view, rng)
    except RecordFaultError as exc:
        st.record_fault(record.event_id, exc)
        return
    try:
        if spectrum.fill_from(view, record.weight * multiplier):
            st.fills += 1
    except RecordFaultError as exc:
        st.record_fault(record.event_id, exc)
    finally:
        spectrum.shifts.undo(tokens, view)

    dirty = view.dirty_fields()
    if dirty:
        raise UndoContractError(
            f"Undo of {spectrum.shifts.label} left fields {dirty} modified on event {record.event_id!r}"
        )


def _shard_offsets(partitions: Sequence[EventStream]) -> list[int] | None:
    if not all(isinstance(p, Sized) for p in partitions):
        return None
    offsets = [0]
    for p in partitions[:-1]:
        offsets.append(offsets[-1] + len(p))
    return offsets


def _resolve_workers(n_items: int, max_workers: int | None) -> int:
    cpu = os.cpu_count() or 1
    if max_workers is None:
        return max(1, min(cpu, n_items))
    return max(1, min(int(max_workers), n_items))


def _log_summary(summary: PassSummary) -> None:
    logger.info(
        "Pass %s: %d events, %d shard(s), %d fault(s)",
        "cancelled" if summary.cancelled else "complete",
        summary.n_events,
        summary.n_shards,
        summary.total_faults,
    )
    for st in summary.spectra:
        if st.faults:
            logger.warning(
                "Spectrum %r skipped %d event(s) on record faults; first: %s",
                st.label,
                st.faults,
                st.fault_events,
            )
