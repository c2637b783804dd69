import json

import pytest

from smartpark.models import Coordinate, ParkingLot, SuggestionItem
from smartpark.providers import LocationProvider, SuggestionProvider

ANN_ARBOR = Coordinate(lat=42.2808, lon=-83.7430)


def make_lot(lot_id: str, lat: float, lon: float, rate: float = 2.0) -> ParkingLot:
    return ParkingLot(
        id=lot_id,
        name=f"Lot {lot_id}",
        address=f"{lot_id} Main St",
        lat=lat,
        lon=lon,
        hourly_rate=rate,
    )


@pytest.fixture
def lots():
    return [
        make_lot("center", 42.2808, -83.7430),
        make_lot("near", 42.2790, -83.7410),
        make_lot("far", 42.30, -83.70),
    ]


def record(**overrides):
    row = {
        "id": "A1",
        "name": "Maynard",
        "address": "324 Maynard St",
        "latitude": 42.2792,
        "longitude": -83.7409,
        "hourlyRate": 2.2,
    }
    row.update(overrides)
    return row


@pytest.fixture
def write_catalog(tmp_path):
    def _write(rows, name="lots.json"):
        path = tmp_path / name
        path.write_text(json.dumps(rows), encoding="utf-8")
        return str(path)

    return _write


class FakeCompleter(SuggestionProvider):
    """Records fragments; the test decides when results arrive."""

    def __init__(self):
        super().__init__()
        self.fragments = []

    def set_query_fragment(self, text):
        self.fragments.append(text)

    def deliver(self, *pairs):
        self.publish([SuggestionItem(title=t, subtitle=s) for t, s in pairs])


class FakeGeocoder:
    """Holds callbacks so responses can be delivered late or out of order."""

    def __init__(self):
        self.requests = []

    def resolve(self, text, callback):
        self.requests.append((text, callback))

    def answer(self, idx, coordinate):
        self.requests[idx][1](coordinate)


@pytest.fixture
def completer():
    return FakeCompleter()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def location():
    return LocationProvider()
