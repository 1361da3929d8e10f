import numpy as np
import pytest

from systana.core.record import Record, RecordFaultError, RecordView, same_value


def test_missing_field_is_a_record_fault():
    rec = Record({"e": 1.0}, event_id=7)
    with pytest.raises(RecordFaultError) as exc:
        rec["theta"]
    assert "theta" in str(exc.value)
    assert isinstance(exc.value, KeyError)


def test_view_writes_never_reach_the_base_record():
    rec = Record({"e": 2.0, "theta": 0.1}, weight=0.5, event_id=3)
    view = RecordView(rec)
    view["e"] = 4.0

    assert view["e"] == 4.0
    assert view["theta"] == 0.1
    assert rec["e"] == 2.0
    assert view.weight == 0.5
    assert view.event_id == 3
    assert view.dirty_fields() == ["e"]

    view["e"] = rec["e"]
    assert view.dirty_fields() == []


def test_coerce_wraps_mappings_with_stream_position():
    rec = Record.coerce({"e": 1.0}, 4)
    assert rec.event_id == 4
    assert rec.weight == 1.0
    with pytest.raises(TypeError):
        Record.coerce(3.0, 0)


def test_same_value_is_exact():
    assert same_value(float("nan"), float("nan"))
    assert not same_value(0.0, -0.0)
    assert not same_value(1.0, 1.0 + 1e-15)
    assert same_value(np.array([1.0, 2.0]), np.array([1.0, 2.0]))
    assert not same_value(np.array([1.0, 2.0]), np.array([1.0, 2.5]))
    assert not same_value(1, 1.0)


def test_view_copies_container_fields_on_first_read():
    base = Record({"hits": [1.0, 2.0], "pos": np.array([0.5, 1.5]), "e": 3.0})
    view = RecordView(base)
    view["hits"][0] *= 100.0
    view["pos"] += 1.0
    assert base["hits"] == [1.0, 2.0]
    np.testing.assert_array_equal(base["pos"], [0.5, 1.5])
    assert view.dirty_fields() == ["hits", "pos"]
    assert view["e"] is base["e"]
