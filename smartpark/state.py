"""Single-owner view state for the parking finder.

All mutation goes through the transition methods on ``ViewStateCoordinator``.
Provider callbacks land on the same thread that owns the coordinator, so no
locking is needed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from smartpark.config import settings
from smartpark.geo import haversine_m
from smartpark.handoff import SchemeCheck, build_handoff_url
from smartpark.models import (
    Coordinate,
    MapRegion,
    NavigationApp,
    ParkingLot,
    SearchPhase,
    SuggestionItem,
    ViewSnapshot,
)
from smartpark.providers import (
    CallbackHandler,
    Geocoder,
    LocationProvider,
    SuggestionProvider,
)
from smartpark.services import describe_distance, filter_nearby

logger = logging.getLogger(__name__)


def _default_app() -> NavigationApp:
    try:
        return NavigationApp(settings.default_navigation_app.lower())
    except ValueError:
        logger.warning("Unknown navigation app %r, using Apple Maps", settings.default_navigation_app)
        return NavigationApp.APPLE


def default_region() -> MapRegion:
    return MapRegion(
        center=Coordinate(lat=settings.default_center_lat, lon=settings.default_center_lon),
        span_deg=settings.region_span_deg,
    )


@dataclass
class ViewState:
    query: str = ""
    phase: SearchPhase = SearchPhase.IDLE
    suggestions: list[SuggestionItem] = field(default_factory=list)
    region: MapRegion = field(default_factory=default_region)
    search_coordinate: Optional[Coordinate] = None
    device_location: Optional[Coordinate] = None
    selected_lot: Optional[ParkingLot] = None
    navigation_app: NavigationApp = NavigationApp.APPLE


class ViewStateCoordinator:
    def __init__(
        self,
        lots: Sequence[ParkingLot],
        completer: SuggestionProvider,
        geocoder: Geocoder,
        location: LocationProvider | None = None,
        threshold_m: float | None = None,
        can_open: SchemeCheck | None = None,
    ) -> None:
        self.lots: tuple[ParkingLot, ...] = tuple(lots)
        self.threshold_m = settings.proximity_threshold_m if threshold_m is None else threshold_m
        self.can_open = can_open
        self.state = ViewState(navigation_app=_default_app())

        self.completer = completer
        self.completer.subscribe(CallbackHandler(self.on_suggestions, self.on_suggestions_error))
        self.geocoder = geocoder

        self.location = location
        if location is not None:
            location.subscribe(CallbackHandler(self.on_location))
            if location.request_permission():
                location.start_updates()

    # --- search ---------------------------------------------------------

    def update_query(self, text: str) -> None:
        self.state.query = text
        if not text.strip():
            self.state.suggestions = []
            self.state.phase = SearchPhase.IDLE
        else:
            self.state.phase = SearchPhase.QUERYING
        self.completer.set_query_fragment(text)

    def on_suggestions(self, items: list[SuggestionItem]) -> None:
        # Latest delivery replaces the list outright.
        self.state.suggestions = list(items)
        if not self.state.query.strip():
            self.state.suggestions = []
            self.state.phase = SearchPhase.IDLE
        elif self.state.suggestions:
            self.state.phase = SearchPhase.SUGGESTED
        elif self.state.phase is SearchPhase.SUGGESTED:
            self.state.phase = SearchPhase.QUERYING

    def on_suggestions_error(self, error: Exception) -> None:
        logger.warning("Autocomplete error: %s", error)

    def select_suggestion(self, item: SuggestionItem) -> None:
        full_query = item.full_query
        self.state.query = full_query
        self.state.suggestions = []
        self.state.phase = SearchPhase.RESOLVED
        self.geocoder.resolve(full_query, self.on_geocode_result)

    def on_geocode_result(self, coordinate: Coordinate | None) -> None:
        if coordinate is None or not coordinate.is_finite:
            logger.info("Geocode produced no usable coordinate; keeping reference %s", self.reference_coordinate)
            return
        self.state.search_coordinate = coordinate
        self.state.region = MapRegion(center=coordinate, span_deg=settings.region_span_deg)

    def clear_search(self) -> None:
        self.state.query = ""
        self.state.suggestions = []
        self.state.phase = SearchPhase.IDLE
        self.state.search_coordinate = None

    # --- map and location -----------------------------------------------

    def set_map_center(self, center: Coordinate) -> None:
        if not center.is_finite:
            logger.info("Ignoring non-finite map center %s", center)
            return
        self.state.region = MapRegion(center=center, span_deg=self.state.region.span_deg)

    def on_location(self, coordinate: Coordinate) -> None:
        self.state.device_location = coordinate

    @property
    def reference_coordinate(self) -> Coordinate:
        return self.state.search_coordinate or self.state.region.center

    @property
    def nearby_lots(self) -> list[ParkingLot]:
        return filter_nearby(self.lots, self.reference_coordinate, self.threshold_m)

    # --- selection ------------------------------------------------------

    def select_lot(self, lot: ParkingLot | None) -> None:
        self.state.selected_lot = lot

    def select_lot_by_id(self, lot_id: str) -> ParkingLot | None:
        lot = next((lot for lot in self.lots if lot.id == lot_id), None)
        self.select_lot(lot)
        return lot

    def dismiss_lot(self) -> None:
        self.state.selected_lot = None

    def select_navigation_app(self, app: NavigationApp) -> None:
        self.state.navigation_app = app

    @property
    def selected_lot_distance(self) -> str | None:
        lot = self.state.selected_lot
        if lot is None:
            return None
        here = self.state.device_location
        if here is None or not here.is_finite:
            return describe_distance(None)
        return describe_distance(haversine_m(here.lat, here.lon, lot.lat, lot.lon))

    def handoff_url(self) -> str | None:
        lot = self.state.selected_lot
        if lot is None:
            return None
        return build_handoff_url(lot.lat, lot.lon, self.state.navigation_app, can_open=self.can_open)

    def snapshot(self) -> ViewSnapshot:
        s = self.state
        return ViewSnapshot(
            query=s.query,
            phase=s.phase,
            suggestions=list(s.suggestions),
            region=s.region,
            search_coordinate=s.search_coordinate,
            device_location=s.device_location,
            reference=self.reference_coordinate,
            nearby=self.nearby_lots,
            selected_lot=s.selected_lot,
            selected_lot_distance=self.selected_lot_distance,
            navigation_app=s.navigation_app,
        )
