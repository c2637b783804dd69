from __future__ import annotations

import math
from typing import Iterable

from smartpark.geo import haversine_m, is_finite_point
from smartpark.models import Coordinate, NearbyLot, ParkingLot

DEFAULT_THRESHOLD_M = 1000.0


def _usable(reference: Coordinate, distance_m: float) -> bool:
    if not is_finite_point(reference.lat, reference.lon):
        return False
    return math.isfinite(distance_m) and distance_m >= 0


def filter_nearby(
    lots: Iterable[ParkingLot],
    reference: Coordinate,
    threshold_m: float = DEFAULT_THRESHOLD_M,
) -> list[ParkingLot]:
    """Lots within ``threshold_m`` (inclusive) of ``reference``, in input order.

    A non-finite reference or threshold means no filtering is possible and
    yields an empty result.
    """
    if not _usable(reference, threshold_m):
        return []
    return [
        lot
        for lot in lots
        if haversine_m(reference.lat, reference.lon, lot.lat, lot.lon) <= threshold_m
    ]


def find_nearby(
    lots: Iterable[ParkingLot],
    lat: float,
    lon: float,
    radius_m: float = DEFAULT_THRESHOLD_M,
    limit: int = 50,
) -> list[NearbyLot]:
    """Distance-annotated lots within ``radius_m``, closest first."""
    if not _usable(Coordinate(lat=lat, lon=lon), radius_m):
        return []

    rows: list[NearbyLot] = []
    for lot in lots:
        d = haversine_m(lat, lon, lot.lat, lot.lon)
        if d > radius_m:
            continue
        rows.append(NearbyLot(lot=lot, distance_m=d, rate_label=format_hourly_rate(lot.hourly_rate)))

    rows.sort(key=lambda r: r.distance_m)
    return rows[: max(0, int(limit))]


def describe_distance(distance_m: float | None) -> str:
    if distance_m is None or not math.isfinite(distance_m):
        return "Location unknown"
    if distance_m > 1000:
        return f"{distance_m / 1000:.1f} km away"
    return f"{distance_m:.0f} m away"


def format_hourly_rate(rate: float) -> str:
    return f"${rate:.2f}/hr"
