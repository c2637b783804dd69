from __future__ import annotations

import csv
import json
import logging
import math
import os
from dataclasses import dataclass

from pydantic import ValidationError

from smartpark.config import settings
from smartpark.models import ParkingLot

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "name", "address", "latitude", "longitude", "hourlyRate")


class CatalogError(ValueError):
    """The catalog resource could not be decoded."""


@dataclass(frozen=True)
class LoadResult:
    lots: list[ParkingLot]
    source: str


def _require_text(row: dict, key: str, idx: int) -> str:
    v = row.get(key)
    if not isinstance(v, str) or v.strip() == "":
        raise CatalogError(f"record {idx}: '{key}' must be a non-empty string")
    return v.strip()


def _require_float(row: dict, key: str, idx: int, allow_text: bool) -> float:
    v = row.get(key)
    if isinstance(v, bool):
        raise CatalogError(f"record {idx}: '{key}' must be a number")
    if isinstance(v, (int, float)):
        f = float(v)
    elif allow_text and isinstance(v, str) and v.strip() != "":
        try:
            f = float(v.strip())
        except ValueError:
            raise CatalogError(f"record {idx}: '{key}' is not a number: {v!r}") from None
    else:
        raise CatalogError(f"record {idx}: '{key}' is missing or not a number")
    if not math.isfinite(f):
        raise CatalogError(f"record {idx}: '{key}' is not finite")
    return f


def _decode_lot(row: object, idx: int, allow_text: bool = False) -> ParkingLot:
    if not isinstance(row, dict):
        raise CatalogError(f"record {idx}: expected an object, got {type(row).__name__}")

    missing = [k for k in REQUIRED_FIELDS if k not in row]
    if missing:
        raise CatalogError(f"record {idx}: missing {', '.join(missing)}")

    try:
        return ParkingLot(
            id=_require_text(row, "id", idx),
            name=_require_text(row, "name", idx),
            address=_require_text(row, "address", idx),
            lat=_require_float(row, "latitude", idx, allow_text),
            lon=_require_float(row, "longitude", idx, allow_text),
            hourly_rate=_require_float(row, "hourlyRate", idx, allow_text),
        )
    except ValidationError as e:
        raise CatalogError(f"record {idx}: {e.errors()[0]['msg']}") from e


def _check_unique(lots: list[ParkingLot]) -> None:
    seen: set[str] = set()
    for lot in lots:
        if lot.id in seen:
            raise CatalogError(f"duplicate lot id {lot.id}")
        seen.add(lot.id)


def load_lots_from_file(path: str) -> LoadResult:
    """Decode every record in ``path``; a single bad record fails the whole load."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Parking lot catalog not found: {path}")

    ext = os.path.splitext(path)[1].lower()
    lots: list[ParkingLot] = []

    if ext == ".csv":
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            for idx, row in enumerate(reader):
                lots.append(_decode_lot(row, idx, allow_text=True))
    elif ext == ".json":
        with open(path, "r", encoding="utf-8") as f:
            try:
                obj = json.load(f)
            except json.JSONDecodeError as e:
                raise CatalogError(f"invalid JSON in {path}: {e}") from e
        if not isinstance(obj, list):
            raise CatalogError(f"Unsupported JSON structure in {path} (expected a list)")
        for idx, row in enumerate(obj):
            lots.append(_decode_lot(row, idx))
    else:
        raise CatalogError(f"Unsupported file extension: {ext} (expected .csv/.json)")

    _check_unique(lots)
    return LoadResult(lots=lots, source=path)


def load_catalog(path: str | None = None) -> list[ParkingLot]:
    """Load the lot catalog, returning an empty list on any failure."""
    path = path or settings.catalog_path
    try:
        result = load_lots_from_file(path)
    except (OSError, UnicodeDecodeError, csv.Error, CatalogError) as e:
        logger.warning("Parking lot catalog unavailable, continuing with no lots: %s", e)
        return []
    logger.info("Loaded %d parking lots from %s", len(result.lots), result.source)
    return result.lots
