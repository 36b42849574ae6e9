import math

import pytest

from propscore.data.base import BehaviorSignal
from propscore.engine.signals import SignalAggregate, aggregate_signals, batch_maxima, normalize


@pytest.mark.parametrize("value,max_value,min_value,expected", [
    (5, 10, 0, 0.5),
    (-3, 10, 0, 0.0),
    (25, 10, 0, 1.0),
    (75, 100, 50, 0.5),
    (7, 0, 0, 0.0),
    (7, -5, 0, 0.0),
    (7, 5, 5, 0.0),
])
def test_normalize(value, max_value, min_value, expected):
    assert normalize(value, max_value, min_value) == pytest.approx(expected)


def test_normalize_stays_in_unit_interval():
    for value in (-1e12, -1, 0, 0.3, 1, 99, 1e12):
        for max_value in (-10, 0, 1, 50, 1e9):
            assert 0.0 <= normalize(value, max_value) <= 1.0


def test_aggregate_sums_values_and_tracks_dwell_average(store):
    aggs = aggregate_signals(store.signals, store.favorites)

    villa = aggs["villa-1"]
    # A view with no value counts as one event
    assert villa.views == 41
    assert villa.clicks == 5
    assert villa.inquiries == 2
    assert villa.dwell_count == 2
    assert villa.avg_dwell == 60
    # favorite row is an implicit save
    assert villa.saves == 1

    assert aggs["apt-1"].saves == 1
    assert aggs["house-1"].saves == 1
    assert aggs["house-1"].views == 0


def test_aggregate_skips_rows_without_property_id():
    aggs = aggregate_signals([BehaviorSignal(None, "view", 3), BehaviorSignal("", "save", 1)], [None])
    assert aggs == {}


def test_aggregate_scoped_to_active_ids(store):
    aggs = aggregate_signals(store.signals, store.favorites, active_ids={"villa-1", "apt-1", "house-1"})
    assert "house-sold" not in aggs


def test_dwell_without_events_averages_to_zero():
    assert SignalAggregate().avg_dwell == 0.0


def test_unknown_signal_types_and_non_finite_values_are_ignored():
    aggs = aggregate_signals([
        BehaviorSignal("p", "share", 10),
        BehaviorSignal("p", "view", math.nan),
    ])
    assert aggs["p"].views == 1
    assert aggs["p"].clicks == 0


def test_batch_maxima_floor_at_one():
    maxima = batch_maxima([SignalAggregate()])
    assert (maxima.views, maxima.saves, maxima.inquiries, maxima.clicks, maxima.dwell) == (1, 1, 1, 1, 1)
    assert batch_maxima([]).views == 1


def test_batch_maxima_uses_average_dwell():
    maxima = batch_maxima([
        SignalAggregate(views=10, dwell_sum=300, dwell_count=3),
        SignalAggregate(views=4, saves=7, dwell_sum=50, dwell_count=1),
    ])
    assert maxima.views == 10
    assert maxima.saves == 7
    assert maxima.dwell == 100
