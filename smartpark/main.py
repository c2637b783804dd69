from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from smartpark.config import settings
from smartpark.data_loader import load_catalog
from smartpark.handoff import handoff_for_lot, installed_schemes
from smartpark.log import setup_logging
from smartpark.models import (
    AppSelection,
    Coordinate,
    HandoffLink,
    LotSelection,
    NavigationApp,
    NearbyLot,
    NearbyQuery,
    ParkingLot,
    QueryUpdate,
    SuggestionItem,
    ViewSnapshot,
)
from smartpark.providers import (
    CallbackHandler,
    LocationProvider,
    LoopDispatcher,
    NominatimCompleter,
    NominatimGeocoder,
)
from smartpark.services import find_nearby
from smartpark.state import ViewStateCoordinator

app = FastAPI(title="SmartPark API", version="0.1.0")

# The UI is served from another local origin during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

lots: list[ParkingLot] = []
location: Optional[LocationProvider] = None
# Provider results for the view are delivered on the event-loop thread.
dispatcher: Optional[LoopDispatcher] = None
view: Optional[ViewStateCoordinator] = None


@app.on_event("startup")
def load_data():
    global lots, location, dispatcher, view
    setup_logging(settings.log_level)
    lots = load_catalog()
    location = LocationProvider()
    dispatcher = LoopDispatcher()
    view = ViewStateCoordinator(
        lots,
        completer=NominatimCompleter(dispatcher=dispatcher),
        geocoder=NominatimGeocoder(dispatcher=dispatcher),
        location=location,
    )


def _view() -> ViewStateCoordinator:
    if view is None:
        raise HTTPException(status_code=503, detail="View state not initialised")
    return view


async def _settled() -> None:
    if dispatcher is not None:
        await dispatcher.drain()


def _lot_or_404(lot_id: str) -> ParkingLot:
    for lot in lots:
        if lot.id == lot_id:
            return lot
    raise HTTPException(status_code=404, detail=f"Unknown lot {lot_id}")


@app.get("/health")
def health():
    return {
        "status": "ok",
        "lots_loaded": len(lots),
    }


@app.get("/lots", response_model=list[ParkingLot])
def list_lots() -> list[ParkingLot]:
    return lots


@app.post("/lots/nearby", response_model=list[NearbyLot])
def get_nearby_lots(query: NearbyQuery) -> list[NearbyLot]:
    """
    Parking lots around a point, closest first.

    - **lat, lon**: Center point coordinates (required)
    - **radius_m**: Maximum distance in meters (default: 1000)
    - **limit**: Maximum number of lots to return (default: 50)
    """
    return find_nearby(lots, lat=query.lat, lon=query.lon, radius_m=query.radius_m, limit=query.limit)


@app.get("/autocomplete", response_model=list[SuggestionItem])
def autocomplete(q: str = "") -> list[SuggestionItem]:
    results: list[SuggestionItem] = []
    errors: list[Exception] = []

    completer = NominatimCompleter()
    completer.subscribe(CallbackHandler(results.extend, errors.append))
    completer.set_query_fragment(q)

    if errors:
        raise HTTPException(status_code=502, detail=f"Nominatim request failed: {errors[-1]}")
    return results


@app.get("/handoff", response_model=HandoffLink)
def handoff(
    lot_id: str,
    nav_app: NavigationApp = Query(NavigationApp.APPLE, alias="app"),
    native: Optional[bool] = None,
) -> HandoffLink:
    """
    Deep link that opens the chosen navigation app at a lot.

    - **native**: whether the Google Maps app is installed; defaults to the configured URL schemes
    """
    lot = _lot_or_404(lot_id)
    can_open = installed_schemes() if native is None else (lambda scheme: native)
    return handoff_for_lot(lot, nav_app, can_open=can_open)


@app.get("/view", response_model=ViewSnapshot)
async def get_view() -> ViewSnapshot:
    return _view().snapshot()


@app.put("/view/query", response_model=ViewSnapshot)
async def put_query(update: QueryUpdate) -> ViewSnapshot:
    v = _view()
    v.update_query(update.text)
    await _settled()
    return v.snapshot()


@app.post("/view/suggestions/{index}", response_model=ViewSnapshot)
async def pick_suggestion(index: int) -> ViewSnapshot:
    v = _view()
    if index < 0 or index >= len(v.state.suggestions):
        raise HTTPException(status_code=404, detail=f"No suggestion at index {index}")
    v.select_suggestion(v.state.suggestions[index])
    await _settled()
    return v.snapshot()


@app.delete("/view/search", response_model=ViewSnapshot)
async def clear_search() -> ViewSnapshot:
    v = _view()
    v.clear_search()
    return v.snapshot()


@app.put("/view/map-center", response_model=ViewSnapshot)
async def put_map_center(center: Coordinate) -> ViewSnapshot:
    v = _view()
    v.set_map_center(center)
    return v.snapshot()


@app.put("/view/location", response_model=ViewSnapshot)
async def put_location(fix: Coordinate) -> ViewSnapshot:
    v = _view()
    if v.location is not None:
        v.location.publish(fix)
    return v.snapshot()


@app.put("/view/selected-lot", response_model=ViewSnapshot)
async def put_selected_lot(selection: LotSelection) -> ViewSnapshot:
    v = _view()
    _lot_or_404(selection.lot_id)
    v.select_lot_by_id(selection.lot_id)
    return v.snapshot()


@app.delete("/view/selected-lot", response_model=ViewSnapshot)
async def dismiss_selected_lot() -> ViewSnapshot:
    v = _view()
    v.dismiss_lot()
    return v.snapshot()


@app.put("/view/navigation-app", response_model=ViewSnapshot)
async def put_navigation_app(selection: AppSelection) -> ViewSnapshot:
    v = _view()
    v.select_navigation_app(selection.app)
    return v.snapshot()


@app.get("/view/handoff")
async def get_view_handoff():
    url = _view().handoff_url()
    if url is None:
        raise HTTPException(status_code=409, detail="No parking lot selected")
    return {"url": url}
