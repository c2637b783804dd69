import pytest

from conftest import record
from smartpark.config import DEFAULT_CATALOG_PATH
from smartpark.data_loader import CatalogError, load_catalog, load_lots_from_file


def test_load_valid_catalog(write_catalog):
    path = write_catalog([record(), record(id="B2", name="Liberty", latitude=42.2803, longitude=-83.7432)])
    result = load_lots_from_file(path)
    assert result.source == path
    assert [l.id for l in result.lots] == ["A1", "B2"]
    lot = result.lots[0]
    assert lot.name == "Maynard"
    assert lot.address == "324 Maynard St"
    assert (lot.lat, lot.lon) == (42.2792, -83.7409)
    assert lot.hourly_rate == 2.2


def test_integer_values_are_accepted(write_catalog):
    path = write_catalog([record(latitude=42, longitude=-83, hourlyRate=0)])
    lot = load_lots_from_file(path).lots[0]
    assert lot.lat == 42.0
    assert lot.hourly_rate == 0.0


def test_missing_hourly_rate_empties_catalog(write_catalog):
    bad = record()
    del bad["hourlyRate"]
    path = write_catalog([record(id="ok"), bad])
    with pytest.raises(CatalogError):
        load_lots_from_file(path)
    assert load_catalog(path) == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"latitude": "42.2792"},
        {"latitude": None},
        {"longitude": True},
        {"hourlyRate": -1.0},
        {"latitude": 91.0},
        {"name": ""},
        {"id": 7},
    ],
)
def test_malformed_record_fails_closed(write_catalog, overrides):
    path = write_catalog([record(**overrides)])
    assert load_catalog(path) == []


def test_non_finite_coordinate_fails_closed(tmp_path):
    path = tmp_path / "lots.json"
    path.write_text(
        '[{"id": "A1", "name": "n", "address": "a", "latitude": NaN, "longitude": 1.0, "hourlyRate": 1.0}]',
        encoding="utf-8",
    )
    with pytest.raises(CatalogError):
        load_lots_from_file(str(path))
    assert load_catalog(str(path)) == []


def test_duplicate_ids_fail_closed(write_catalog):
    path = write_catalog([record(), record()])
    assert load_catalog(path) == []


def test_not_a_list(write_catalog):
    path = write_catalog({"features": []})
    assert load_catalog(path) == []


def test_invalid_json(tmp_path):
    path = tmp_path / "lots.json"
    path.write_text("[{", encoding="utf-8")
    assert load_catalog(str(path)) == []


def test_missing_file(tmp_path):
    assert load_catalog(str(tmp_path / "nope.json")) == []
    with pytest.raises(FileNotFoundError):
        load_lots_from_file(str(tmp_path / "nope.json"))


def test_csv_catalog(tmp_path):
    path = tmp_path / "lots.csv"
    path.write_text(
        "id,name,address,latitude,longitude,hourlyRate\n"
        "A1,Maynard,324 Maynard St,42.2792,-83.7409,2.20\n",
        encoding="utf-8",
    )
    lots = load_catalog(str(path))
    assert len(lots) == 1
    assert lots[0].hourly_rate == 2.2


def test_csv_with_blank_rate(tmp_path):
    path = tmp_path / "lots.csv"
    path.write_text(
        "id,name,address,latitude,longitude,hourlyRate\n"
        "A1,Maynard,324 Maynard St,42.2792,-83.7409,\n",
        encoding="utf-8",
    )
    assert load_catalog(str(path)) == []


def test_unsupported_extension(tmp_path):
    path = tmp_path / "lots.geojson"
    path.write_text("[]", encoding="utf-8")
    assert load_catalog(str(path)) == []


def test_bundled_catalog_loads():
    lots = load_catalog(DEFAULT_CATALOG_PATH)
    assert len(lots) == 8
    assert len({l.id for l in lots}) == 8
