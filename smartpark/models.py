from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.lat) and math.isfinite(self.lon)


class ParkingLot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str
    lat: float = Field(allow_inf_nan=False, ge=-90.0, le=90.0)
    lon: float = Field(allow_inf_nan=False, ge=-180.0, le=180.0)
    hourly_rate: float = Field(allow_inf_nan=False, ge=0.0)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lon=self.lon)


class SuggestionItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    subtitle: str = ""

    @property
    def full_query(self) -> str:
        return self.title + " " + self.subtitle


class NavigationApp(str, Enum):
    APPLE = "apple"
    GOOGLE = "google"

    @property
    def label(self) -> str:
        return "Apple Maps" if self is NavigationApp.APPLE else "Google Maps"


class SearchPhase(str, Enum):
    IDLE = "idle"
    QUERYING = "querying"
    SUGGESTED = "suggested"
    RESOLVED = "resolved"


class MapRegion(BaseModel):
    center: Coordinate
    span_deg: float = 0.01


class NearbyQuery(BaseModel):
    lat: float
    lon: float
    radius_m: float = 1000.0
    limit: int = 50


class NearbyLot(BaseModel):
    lot: ParkingLot
    distance_m: float
    rate_label: str


class HandoffLink(BaseModel):
    lot_id: str
    app: NavigationApp
    url: str


class QueryUpdate(BaseModel):
    text: str


class LotSelection(BaseModel):
    lot_id: str


class AppSelection(BaseModel):
    app: NavigationApp


class ViewSnapshot(BaseModel):
    query: str
    phase: SearchPhase
    suggestions: list[SuggestionItem]
    region: MapRegion
    search_coordinate: Coordinate | None = None
    device_location: Coordinate | None = None
    reference: Coordinate
    nearby: list[ParkingLot]
    selected_lot: ParkingLot | None = None
    selected_lot_distance: str | None = None
    navigation_app: NavigationApp
