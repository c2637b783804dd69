"""Adapters for the three asynchronous inputs: device location, address
completion and geocoding.

Each adapter delivers results through callbacks. A dispatcher decides where
the blocking work runs and which thread the callback lands on. An interested
component subscribes an ``UpdateHandler`` (anything with
``on_update`` and ``on_error``) and never polls.
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar, Union

import requests

from smartpark.config import settings
from smartpark.models import Coordinate, SuggestionItem

logger = logging.getLogger(__name__)
_session = requests.Session()

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


class UpdateHandler(Protocol[T_contra]):
    def on_update(self, value: T_contra) -> None: ...

    def on_error(self, error: Exception) -> None: ...


class CallbackHandler(Generic[T]):
    """Adapts a pair of plain callables to ``UpdateHandler``."""

    def __init__(
        self,
        on_update: Callable[[T], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        self._on_update = on_update
        self._on_error = on_error

    def on_update(self, value: T) -> None:
        self._on_update(value)

    def on_error(self, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)


class Publisher(Generic[T]):
    def __init__(self) -> None:
        self._handlers: list[UpdateHandler[T]] = []

    def subscribe(self, handler: UpdateHandler[T]) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: UpdateHandler[T]) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def publish(self, value: T) -> None:
        for h in list(self._handlers):
            h.on_update(value)

    def fail(self, error: Exception) -> None:
        for h in list(self._handlers):
            h.on_error(error)


# --- dispatch ---------------------------------------------------------------


class InlineDispatcher:
    """Runs provider work on the calling thread and delivers immediately."""

    def submit(
        self,
        work: Callable[[], T],
        on_done: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        try:
            result = work()
        except Exception as e:
            on_error(e)
            return
        on_done(result)


class LoopDispatcher:
    """Runs blocking provider work in an executor and delivers the outcome on
    the event-loop thread.

    ``submit`` must be called from a coroutine running on that loop. Callbacks
    run inside a task on the loop, so every state change they make happens on
    the single thread that owns the loop.
    """

    def __init__(self, executor: Executor | None = None) -> None:
        self.executor = executor
        self._pending: set[asyncio.Task] = set()

    def submit(
        self,
        work: Callable[[], T],
        on_done: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(loop, work, on_done, on_error))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run(self, loop, work, on_done, on_error) -> None:
        try:
            result = await loop.run_in_executor(self.executor, work)
        except Exception as e:
            on_error(e)
            return
        on_done(result)

    async def drain(self) -> None:
        """Wait until every submitted job has delivered."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


Dispatcher = Union[InlineDispatcher, LoopDispatcher]


# --- location ---------------------------------------------------------------


class LocationProvider(Publisher[Coordinate]):
    """Latest known device position; a straight passthrough of fixes."""

    def __init__(self) -> None:
        super().__init__()
        self.authorized = False
        self.updating = False
        self.current: Coordinate | None = None

    def request_permission(self) -> bool:
        self.authorized = True
        return self.authorized

    def start_updates(self) -> None:
        if not self.authorized:
            logger.info("Location updates requested before permission was granted")
            return
        self.updating = True

    def stop_updates(self) -> None:
        self.updating = False

    def publish(self, value: Coordinate) -> None:
        if not self.updating:
            return
        self.current = value
        super().publish(value)


class StaticLocationProvider(LocationProvider):
    """Reports one fixed position as soon as updates start."""

    def __init__(self, fix: Coordinate) -> None:
        super().__init__()
        self.fix = fix

    def start_updates(self) -> None:
        super().start_updates()
        if self.updating:
            self.publish(self.fix)


# --- address completion -----------------------------------------------------


class SuggestionProvider(Publisher[list[SuggestionItem]]):
    def set_query_fragment(self, text: str) -> None:
        raise NotImplementedError


def _format_nominatim_subtitle(item: dict[str, Any]) -> str:
    addr = item.get("address") or {}
    house = (addr.get("house_number") or "").strip()
    road = (addr.get("road") or addr.get("pedestrian") or addr.get("footway") or "").strip()
    city = (addr.get("city") or addr.get("town") or addr.get("village") or "").strip()
    state = (addr.get("state") or "").strip()

    street = " ".join([p for p in [house, road] if p])
    parts = [p for p in [street, city, state] if p]
    if parts:
        return ", ".join(parts)

    display = (item.get("display_name") or "").strip()
    if display:
        # keep it short: segments after the title
        seg = [s.strip() for s in display.split(",") if s.strip()]
        return ", ".join(seg[1:3])
    return ""


def _nominatim_search(q: str, limit: int, viewbox: tuple[float, float, float, float] | None = None) -> list[dict[str, Any]]:
    params: dict[str, Any] = {
        "format": "jsonv2",
        "q": q,
        "limit": str(limit),
        "addressdetails": 1,
    }
    if viewbox is not None:
        min_lat, min_lon, max_lat, max_lon = viewbox
        params["viewbox"] = f"{min_lon},{max_lat},{max_lon},{min_lat}"
        params["bounded"] = 1

    r = _session.get(
        f"{settings.nominatim_url.rstrip('/')}/search",
        params=params,
        headers={"User-Agent": settings.nominatim_user_agent},
        timeout=settings.http_timeout_s,
    )
    r.raise_for_status()
    data = r.json()
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def suggestions_from_results(data: list[dict[str, Any]], q: str = "") -> list[SuggestionItem]:
    out: list[SuggestionItem] = []
    for item in data:
        name = (item.get("name") or "").strip()
        display = (item.get("display_name") or "").strip()
        title = name or (display.split(",")[0].strip() if display else q)
        if not title:
            continue
        out.append(SuggestionItem(title=title, subtitle=_format_nominatim_subtitle(item)))
    return out


class NominatimCompleter(SuggestionProvider):
    """Address completion backed by the Nominatim search endpoint."""

    def __init__(
        self,
        limit: int | None = None,
        viewbox: tuple[float, float, float, float] | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        super().__init__()
        self.limit = limit or settings.suggestion_limit
        self.viewbox = viewbox
        self.dispatcher = dispatcher or InlineDispatcher()
        self.query_fragment = ""

    def set_query_fragment(self, text: str) -> None:
        self.query_fragment = text
        q = (text or "").strip()
        if not q:
            self.publish([])
            return
        self.dispatcher.submit(
            lambda: _nominatim_search(q, self.limit, self.viewbox),
            lambda data: self._deliver(q, data),
            lambda e: self._failed(q, e),
        )

    def _deliver(self, q: str, data: list[dict[str, Any]]) -> None:
        results = suggestions_from_results(data, q)
        logger.debug("Got %d autocomplete suggestions for %r", len(results), q)
        self.publish(results)

    def _failed(self, q: str, error: Exception) -> None:
        logger.warning("Autocomplete request failed for %r: %s", q, error)
        self.fail(error)


# --- geocoding --------------------------------------------------------------

GeocodeCallback = Callable[[Optional[Coordinate]], None]


class Geocoder(Protocol):
    def resolve(self, text: str, callback: GeocodeCallback) -> None: ...


def _first_coordinate(q: str, data: list[dict[str, Any]]) -> Coordinate | None:
    if not data:
        logger.info("Search returned no results for %r", q)
        return None
    first = data[0]
    try:
        coord = Coordinate(lat=float(first.get("lat")), lon=float(first.get("lon")))
    except (TypeError, ValueError):
        coord = None
    if coord is None or not coord.is_finite:
        logger.info("Search failed to return valid coordinate for %r", q)
        return None
    return coord


class NominatimGeocoder:
    """Resolves free text to the first Nominatim hit, or ``None``."""

    def __init__(self, dispatcher: Dispatcher | None = None) -> None:
        self.dispatcher = dispatcher or InlineDispatcher()

    def resolve(self, text: str, callback: GeocodeCallback) -> None:
        q = (text or "").strip()
        if not q:
            callback(None)
            return

        def failed(e: Exception) -> None:
            logger.warning("Search error for %r: %s", q, e)
            callback(None)

        self.dispatcher.submit(
            lambda: _nominatim_search(q, 1),
            lambda data: callback(_first_coordinate(q, data)),
            failed,
        )
