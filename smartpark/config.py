from __future__ import annotations

import logging
import os

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def _env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(f"SMARTPARK_{name}")
    if val is None or val.strip() == "":
        return default
    return val.strip()


def _env_float(name: str, default: float) -> float:
    val = _env(name)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        logger.warning("Ignoring SMARTPARK_%s=%r (not a number), using %s", name, val, default)
        return default


def _env_int(name: str, default: int) -> int:
    val = _env(name)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        logger.warning("Ignoring SMARTPARK_%s=%r (not an integer), using %s", name, val, default)
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    val = _env(name)
    if val is None:
        return list(default)
    return [p.strip() for p in val.split(",") if p.strip()]


DEFAULT_CATALOG_PATH = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "data", "static_parking_data.json"
)


class Settings(BaseModel):
    # Bundled JSON (or a CSV with the same columns) holding the lot catalog.
    catalog_path: str = DEFAULT_CATALOG_PATH

    # Lots farther than this from the reference coordinate are hidden.
    proximity_threshold_m: float = 1000.0

    # Map starts centered on downtown Ann Arbor.
    default_center_lat: float = 42.2808
    default_center_lon: float = -83.743
    region_span_deg: float = 0.01

    default_navigation_app: str = "apple"

    # URL schemes the device can open; "comgooglemaps://" means Google Maps is installed.
    installed_url_schemes: list[str] = []

    nominatim_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "SmartPark/0.1 (parking finder)"
    http_timeout_s: float = 10.0
    suggestion_limit: int = 8

    log_level: str = "INFO"


def load_settings() -> Settings:
    return Settings(
        catalog_path=_env("CATALOG_PATH", DEFAULT_CATALOG_PATH),
        proximity_threshold_m=_env_float("PROXIMITY_THRESHOLD_M", 1000.0),
        default_center_lat=_env_float("DEFAULT_CENTER_LAT", 42.2808),
        default_center_lon=_env_float("DEFAULT_CENTER_LON", -83.743),
        region_span_deg=_env_float("REGION_SPAN_DEG", 0.01),
        default_navigation_app=_env("NAVIGATION_APP", "apple"),
        installed_url_schemes=_env_list("INSTALLED_URL_SCHEMES", []),
        nominatim_url=_env("NOMINATIM_URL", "https://nominatim.openstreetmap.org"),
        nominatim_user_agent=_env("NOMINATIM_USER_AGENT", "SmartPark/0.1 (parking finder)"),
        http_timeout_s=_env_float("HTTP_TIMEOUT_S", 10.0),
        suggestion_limit=_env_int("SUGGESTION_LIMIT", 8),
        log_level=_env("LOG_LEVEL", "INFO"),
    )


settings = load_settings()
