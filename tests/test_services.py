import math

import pytest

from conftest import ANN_ARBOR, make_lot
from smartpark.geo import haversine_m
from smartpark.models import Coordinate
from smartpark.services import describe_distance, filter_nearby, find_nearby, format_hourly_rate


def test_haversine_zero_for_same_point():
    assert haversine_m(42.2808, -83.7430, 42.2808, -83.7430) == 0.0


def test_haversine_one_degree_of_latitude():
    d = haversine_m(0.0, 0.0, 1.0, 0.0)
    assert d == pytest.approx(111_195, rel=1e-3)


def test_haversine_longitude_shrinks_with_latitude():
    at_equator = haversine_m(0.0, 0.0, 0.0, 0.01)
    at_ann_arbor = haversine_m(42.28, 0.0, 42.28, 0.01)
    assert at_ann_arbor < at_equator
    assert at_ann_arbor == pytest.approx(at_equator * math.cos(math.radians(42.28)), rel=1e-3)


def test_lot_at_reference_is_included():
    lot = make_lot("a", 42.2808, -83.7430)
    assert filter_nearby([lot], ANN_ARBOR, 1000) == [lot]


def test_distant_lot_is_excluded(lots):
    far = [l for l in lots if l.id == "far"]
    assert filter_nearby(far, ANN_ARBOR, 1000) == []


def test_filter_keeps_input_order(lots):
    assert [l.id for l in filter_nearby(lots, ANN_ARBOR)] == ["center", "near"]


def test_threshold_is_inclusive(lots):
    near = lots[1]
    d = haversine_m(ANN_ARBOR.lat, ANN_ARBOR.lon, near.lat, near.lon)
    assert filter_nearby([near], ANN_ARBOR, d) == [near]
    assert filter_nearby([near], ANN_ARBOR, d - 0.01) == []


def test_empty_catalog():
    assert filter_nearby([], ANN_ARBOR, 1000) == []
    assert filter_nearby([], Coordinate(lat=0, lon=0), 0) == []


@pytest.mark.parametrize(
    "ref",
    [
        Coordinate(lat=float("nan"), lon=-83.743),
        Coordinate(lat=42.28, lon=float("inf")),
    ],
)
def test_non_finite_reference_yields_nothing(lots, ref):
    assert filter_nearby(lots, ref, 1_000_000) == []


def test_non_finite_threshold_yields_nothing(lots):
    assert filter_nearby(lots, ANN_ARBOR, float("nan")) == []


def test_monotonic_in_threshold(lots):
    thresholds = [0, 100, 300, 1000, 5000, 50_000]
    results = [set(l.id for l in filter_nearby(lots, ANN_ARBOR, t)) for t in thresholds]
    for smaller, larger in zip(results, results[1:]):
        assert smaller <= larger
    assert results[-1] == {"center", "near", "far"}


def test_filter_is_idempotent(lots):
    once = filter_nearby(lots, ANN_ARBOR, 1000)
    assert filter_nearby(once, ANN_ARBOR, 1000) == once


def test_find_nearby_sorts_and_limits(lots):
    rows = find_nearby(list(reversed(lots)), ANN_ARBOR.lat, ANN_ARBOR.lon, radius_m=10_000, limit=2)
    assert [r.lot.id for r in rows] == ["center", "near"]
    assert rows[0].distance_m == 0.0
    assert rows[1].rate_label == "$2.00/hr"


def test_find_nearby_respects_radius(lots):
    rows = find_nearby(lots, ANN_ARBOR.lat, ANN_ARBOR.lon, radius_m=1000)
    assert {r.lot.id for r in rows} == {"center", "near"}


def test_describe_distance():
    assert describe_distance(None) == "Location unknown"
    assert describe_distance(250.4) == "250 m away"
    assert describe_distance(1000) == "1000 m away"
    assert describe_distance(2830) == "2.8 km away"


def test_format_hourly_rate():
    assert format_hourly_rate(2.2) == "$2.20/hr"
    assert format_hourly_rate(0) == "$0.00/hr"
