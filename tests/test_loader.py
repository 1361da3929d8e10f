import numpy as np
import pytest

from systana.core.binning import Binning
from systana.core.config import ConfigurationError
from systana.core.loader import LoaderError, SpectrumLoader
from systana.core.record import Record
from systana.core.spectrum import Spectrum
from systana.core.var import Var, field_var
from systana.ops.compare import fractional_deviation
from systana.syst.base import UndoContractError
from systana.syst.shapes import FuncSyst, ScaleSyst, SmearSyst, WeightSyst
from systana.syst.shifts import VariationSet

E = field_var("e")
SCALE = ScaleSyst("eScale", "Energy scale", field="e", k=0.2)
SCALE_T = ScaleSyst("tracking", "Tracked scale", field="e", k=0.2)


def _events(values):
    return [Record({"e": v}, event_id=f"evt{i}") for i, v in enumerate(values)]


def _scale_pass(values):
    loader = SpectrumLoader(_events(values))
    binning = Binning.simple(2, 0, 10)
    base = loader.spectrum(E, binning)
    up = loader.spectrum(E, binning, shifts=VariationSet.single(SCALE, +1), label="scale_up")
    summary = loader.go()
    return base, up, summary


def test_scale_variation_end_to_end():
    base, up, summary = _scale_pass([1.0, 2.5, 2.5, 4.9, 9.9])

    assert summary.n_events == 5
    assert not summary.cancelled
    np.testing.assert_allclose(base.hist.sums, [4.0, 1.0])
    # 4.9 -> 5.88 crosses into the upper bin, 9.9 -> 11.88 leaves into overflow
    np.testing.assert_allclose(up.hist.sums, [3.0, 1.0])
    assert up.hist.overflow == 1.0

    dev = fractional_deviation(up, base)
    np.testing.assert_allclose(dev.values, [-0.25, 0.0])


def test_scale_variation_moves_one_event_across_bins():
    base, up, _ = _scale_pass([1.0, 4.9, 5.5, 6.0, 7.5])

    np.testing.assert_allclose(base.hist.sums, [2.0, 3.0])
    np.testing.assert_allclose(up.hist.sums, [1.0, 4.0])
    dev = fractional_deviation(up, base)
    np.testing.assert_allclose(dev.values, [-0.5, 1.0 / 3.0])
    assert not dev.undefined.any()


def test_canonical_records_are_never_mutated():
    events = _events([1.0, 2.5, 4.9])
    originals = [r["e"] for r in events]
    loader = SpectrumLoader(events)
    loader.spectrum(E, Binning.simple(2, 0, 10), shifts=VariationSet.single(SCALE, 3.0))
    loader.go()
    assert all(r["e"] is o for r, o in zip(events, originals))


def test_each_spectrum_draws_its_own_smear():
    smear = SmearSyst("eSmear", "Energy smear", field="e", width=0.3)
    seen = {"a": [], "b": []}
    loader = SpectrumLoader(_events([5.0]), rng=np.random.default_rng(11))
    binning = Binning.simple(10, 0, 20)
    for label in ("a", "b"):
        var = Var(lambda r, label=label: seen[label].append(r["e"]) or r["e"], f"e_{label}")
        loader.spectrum(var, binning, shifts=VariationSet.single(smear, 1.0), label=label)
    loader.go()
    assert seen["a"][0] != seen["b"][0]


def test_seeded_smear_is_reproducible():
    smear = SmearSyst("eSmear", "Energy smear", field="e", width=0.3)
    values = np.random.default_rng(0).uniform(0, 10, 200)

    def one_pass(seed):
        loader = SpectrumLoader(_events(values), rng=np.random.default_rng(seed))
        s = loader.spectrum(E, Binning.simple(10, 0, 10), shifts=VariationSet.single(smear, 1.0))
        loader.go()
        return s.hist.sums

    np.testing.assert_array_equal(one_pass(4), one_pass(4))
    assert not np.array_equal(one_pass(4), one_pass(5))


def test_weights_combine_base_weight_and_multiplier():
    events = [Record({"e": 1.0}, weight=2.0), Record({"e": 6.0}, weight=0.5)]
    loader = SpectrumLoader(events)
    norm = WeightSyst("norm", "Normalisation", k=0.5)
    s = loader.spectrum(E, Binning.simple(2, 0, 10), shifts=VariationSet.single(norm, 1.0))
    base = loader.spectrum(E, Binning.simple(2, 0, 10))
    loader.go()
    np.testing.assert_allclose(s.hist.sums, [3.0, 0.75])
    np.testing.assert_allclose(s.hist.sumw2, [9.0, 0.5625])
    np.testing.assert_allclose(base.hist.sums, [2.0, 0.5])


def test_record_fault_is_isolated_to_one_spectrum_and_event():
    events = [Record({"e": 1.0, "x": 1.0}), Record({"e": 2.0}, event_id="broken"), Record({"e": 7.0, "x": 3.0})]
    loader = SpectrumLoader(events)
    binning = Binning.simple(2, 0, 10)
    a = loader.spectrum(field_var("x"), binning, label="A")
    b = loader.spectrum(E, binning, label="B")
    summary = loader.go()

    assert summary.n_events == 3
    stats_a, stats_b = summary.spectra
    assert stats_a.faults == 1
    assert stats_a.fault_events == ["broken"]
    assert stats_a.fills == 2
    assert stats_b.faults == 0
    np.testing.assert_allclose(a.hist.sums, [2.0, 0.0])
    np.testing.assert_allclose(b.hist.sums, [2.0, 1.0])
    assert summary.total_faults == 1


def test_fault_in_shifted_spectrum_is_counted():
    events = [Record({"e": 1.0}), Record({"other": 2.0}), Record({"e": 7.0})]
    loader = SpectrumLoader(events, max_reported_faults=1)
    s = loader.spectrum(E, Binning.simple(2, 0, 10), shifts=VariationSet.single(SCALE, 1.0))
    summary = loader.go()
    assert summary.spectra[0].faults == 1
    assert summary.spectra[0].fault_events == [1]
    assert s.hist.sums.sum() == 2.0


def test_nan_value_is_a_record_fault():
    loader = SpectrumLoader(_events([1.0, float("nan")]))
    s = loader.spectrum(E, Binning.simple(2, 0, 10))
    summary = loader.go()
    assert summary.spectra[0].faults == 1
    assert s.hist.sums.sum() == 1.0


@pytest.mark.parametrize("bad", [float("inf"), float("-inf")])
def test_infinite_value_is_a_record_fault(bad):
    loader = SpectrumLoader(_events([1.0, bad]))
    s = loader.spectrum(E, Binning.simple(2, 0, 10))
    summary = loader.go()
    assert summary.spectra[0].faults == 1
    assert summary.spectra[0].fault_events == ["evt1"]
    assert s.hist.overflow == 0.0
    assert s.hist.underflow == 0.0


def test_invalid_undo_token_aborts_the_pass():
    class Broken:
        name = "broken"
        description = "returns no token"

        def apply(self, sigma, record, rng):
            record["e"] = 0.0
            return "token", 1.0

        def undo(self, token, record):
            pass

    loader = SpectrumLoader(_events([1.0, 2.0]))
    loader.spectrum(E, Binning.simple(2, 0, 10), shifts=VariationSet.single(Broken(), 1.0))
    with pytest.raises(UndoContractError):
        loader.go()


def test_undeclared_field_write_aborts_the_pass():
    def leaky(sigma, record, rng):
        record["e"] = record["e"] * 2.0
        record["theta"] = 1.0

    syst = FuncSyst("leaky", "Writes outside its declared fields", fields=("e",), func=leaky)
    events = [Record({"e": 1.0, "theta": 0.0})]
    loader = SpectrumLoader(events)
    loader.spectrum(E, Binning.simple(2, 0, 10), shifts=VariationSet.single(syst, 1.0))
    with pytest.raises(UndoContractError):
        loader.go()
    assert events[0]["theta"] == 0.0


def test_cancel_stops_between_events():
    def stream():
        for i in range(5):
            if i == 2:
                loader.cancel()
            yield Record({"e": float(i)})

    loader = SpectrumLoader(stream())
    s = loader.spectrum(E, Binning.simple(2, 0, 10))
    summary = loader.go()
    assert summary.cancelled
    assert summary.n_events == 2
    assert s.frozen
    assert s.hist.sums.sum() == 2.0


def test_interrupt_mid_event_still_undoes():
    undone = []

    class Tracking:
        name = "tracking"
        description = "records undo"

        def apply(self, sigma, record, rng):
            return SCALE_T.apply(sigma, record, rng)

        def undo(self, token, record):
            undone.append(token)
            SCALE_T.undo(token, record)

    def interrupting(record):
        raise KeyboardInterrupt

    loader = SpectrumLoader(_events([1.0]))
    loader.spectrum(Var(interrupting, "boom"), Binning.simple(2, 0, 10), shifts=VariationSet.single(Tracking(), 1.0))
    with pytest.raises(KeyboardInterrupt):
        loader.go()
    assert len(undone) == 1
    assert undone[0].consumed


def test_loader_lifecycle():
    loader = SpectrumLoader(_events([1.0]))
    s = loader.spectrum(E, Binning.simple(2, 0, 10))
    with pytest.raises(ConfigurationError):
        loader.add(s)
    loader.go()
    with pytest.raises(LoaderError):
        loader.go()
    with pytest.raises(ConfigurationError):
        loader.spectrum(E, Binning.simple(2, 0, 10))

    other = SpectrumLoader(_events([1.0]))
    with pytest.raises(ConfigurationError):
        other.add(s)
    with pytest.raises(ConfigurationError):
        SpectrumLoader(_events([1.0])).go()


def test_sharded_pass_matches_single_pass_for_deterministic_shifts():
    values = np.random.default_rng(3).uniform(-1, 12, 300)
    binning = Binning.simple(12, 0, 10)
    up = VariationSet.single(SCALE, 1.0)

    single = SpectrumLoader(_events(values))
    s_base = single.spectrum(E, binning)
    s_up = single.spectrum(E, binning, shifts=up)
    single.go()

    sharded = SpectrumLoader()
    h_base = sharded.spectrum(E, binning)
    h_up = sharded.spectrum(E, binning, shifts=up)
    parts = [_events(values[:100]), _events(values[100:250]), _events(values[250:])]
    summary = sharded.go_sharded(parts, max_workers=3)

    assert summary.n_events == 300
    assert summary.n_shards == 3
    np.testing.assert_allclose(h_base.hist.sums, s_base.hist.sums)
    np.testing.assert_allclose(h_up.hist.sums, s_up.hist.sums)
    assert h_up.hist.overflow == pytest.approx(s_up.hist.overflow)
    assert h_up.frozen


def test_spectrum_requires_registration_before_fill():
    s = Spectrum(var=E, binning=Binning.simple(2, 0, 10))
    assert s.label == "nominal"
    assert s.is_nominal
    assert s.hist.n_entries == 0


def _boost_first_hit(sigma, record, rng):
    record["hits"][0] *= 100.0


def test_in_place_edit_of_declared_container_never_reaches_later_spectra():
    first_hit = Var(lambda r: r["hits"][0], "first_hit")
    syst = FuncSyst("hitBoost", "Boost the leading hit", fields=("hits",), func=_boost_first_hit)
    events = [Record({"hits": [1.0, 2.0]})]
    loader = SpectrumLoader(events)
    binning = Binning.simple(2, 0, 200)
    boosted = loader.spectrum(first_hit, binning, shifts=VariationSet.single(syst, 1.0), label="boosted")
    base = loader.spectrum(first_hit, binning, label="nominal")
    loader.go()

    assert events[0]["hits"] == [1.0, 2.0]
    np.testing.assert_allclose(boosted.hist.sums, [0.0, 1.0])
    np.testing.assert_allclose(base.hist.sums, [1.0, 0.0])


def test_in_place_edit_of_undeclared_container_aborts_the_pass():
    syst = FuncSyst("hitBoost", "Declares nothing", fields=(), func=_boost_first_hit)
    events = [Record({"e": 1.0, "hits": [1.0, 2.0]})]
    loader = SpectrumLoader(events)
    loader.spectrum(E, Binning.simple(2, 0, 10), shifts=VariationSet.single(syst, 1.0))
    with pytest.raises(UndoContractError):
        loader.go()
    assert events[0]["hits"] == [1.0, 2.0]


def test_sharded_fault_ids_are_global_positions():
    values = [1.0, 2.0, 3.0, 4.0, float("nan"), 6.0]
    plain = [{"e": v} for v in values]
    loader = SpectrumLoader()
    loader.spectrum(E, Binning.simple(2, 0, 10))
    summary = loader.go_sharded([plain[:3], plain[3:]], max_workers=2)
    assert summary.spectra[0].fault_events == [4]


def test_sharded_fault_ids_of_unsized_partitions_name_the_shard():
    loader = SpectrumLoader()
    loader.spectrum(E, Binning.simple(2, 0, 10))
    parts = [iter([{"e": 1.0}]), iter([{"e": 2.0}, {"x": 0.0}])]
    summary = loader.go_sharded(parts, max_workers=1)
    assert summary.spectra[0].fault_events == [(1, 1)]
