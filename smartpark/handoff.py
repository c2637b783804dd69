"""Deep links that hand a destination off to an external navigation app."""
from __future__ import annotations

from typing import Callable, Iterable

from smartpark.config import settings
from smartpark.models import HandoffLink, NavigationApp, ParkingLot

GOOGLE_MAPS_SCHEME = "comgooglemaps://"

APPLE_MAPS_URL = "http://maps.apple.com/?daddr={lat},{lon}"
GOOGLE_MAPS_NATIVE_URL = "comgooglemaps://?daddr={lat},{lon}&directionsmode=driving"
GOOGLE_MAPS_WEB_URL = "https://www.google.com/maps/dir/?api=1&destination={lat},{lon}"

SchemeCheck = Callable[[str], bool]


def installed_schemes(schemes: Iterable[str] | None = None) -> SchemeCheck:
    """Build a scheme check from a list of openable URL schemes."""
    available = {s.strip().lower() for s in (schemes if schemes is not None else settings.installed_url_schemes)}
    return lambda scheme: scheme.lower() in available


def _fmt(v: float) -> str:
    # repr is the shortest string that round-trips the double
    return repr(float(v))


def build_handoff_url(
    lat: float,
    lon: float,
    app: NavigationApp,
    can_open: SchemeCheck | None = None,
) -> str:
    can_open = can_open or installed_schemes()
    coords = {"lat": _fmt(lat), "lon": _fmt(lon)}

    if app is NavigationApp.APPLE:
        return APPLE_MAPS_URL.format(**coords)

    if can_open(GOOGLE_MAPS_SCHEME):
        return GOOGLE_MAPS_NATIVE_URL.format(**coords)
    return GOOGLE_MAPS_WEB_URL.format(**coords)


def handoff_for_lot(
    lot: ParkingLot,
    app: NavigationApp,
    can_open: SchemeCheck | None = None,
) -> HandoffLink:
    return HandoffLink(
        lot_id=lot.id,
        app=app,
        url=build_handoff_url(lot.lat, lot.lon, app, can_open=can_open),
    )
