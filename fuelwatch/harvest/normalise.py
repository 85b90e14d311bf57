"""Convert one upstream retailer payload into a canonical snapshot."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from fuelwatch.common.errors import InvalidFormat
from fuelwatch.common.models import Location, RetailerSnapshot, Station
from fuelwatch.common.time_utils import as_utc, parse_feed_timestamp, utc_now


def _safe_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_location(raw: object) -> Location | None:
    if not isinstance(raw, dict):
        return None
    lat = _safe_float(raw.get("latitude"))
    lon = _safe_float(raw.get("longitude"))
    if lat is None or lon is None:
        return None
    return Location(latitude=lat, longitude=lon)


def _parse_prices(raw: dict) -> dict[str, float]:
    # Values that do not coerce to a number are treated as not sold.
    prices: dict[str, float] = {}
    for fuel_type, value in raw.items():
        price = _safe_float(value)
        if price is None:
            continue
        prices[str(fuel_type).strip()] = price
    return prices


def _parse_station(raw: object, idx: int) -> Station:
    if not isinstance(raw, dict):
        raise InvalidFormat(f"stations[{idx}] is not an object")

    site_id = _text(raw.get("site_id"))
    if not site_id:
        raise InvalidFormat(f"stations[{idx}] is missing site_id")
    prices = raw.get("prices")
    if not isinstance(prices, dict):
        raise InvalidFormat(f"stations[{idx}] ({site_id}) is missing a prices mapping")

    return Station(
        site_id=site_id,
        brand=_text(raw.get("brand")),
        address=_text(raw.get("address")),
        postcode=_text(raw.get("postcode")),
        location=_parse_location(raw.get("location")),
        prices=_parse_prices(prices),
    )


def require_stations_array(payload: Any) -> list:
    """Structural check shared by the fetch layer and the normaliser."""
    if not isinstance(payload, dict):
        raise InvalidFormat("Invalid data format: payload is not a JSON object")
    stations = payload.get("stations")
    if not isinstance(stations, list):
        raise InvalidFormat("Invalid data format: missing stations array")
    return stations


def normalise_feed(retailer_name: str, payload: Any, *, now: datetime | None = None) -> RetailerSnapshot:
    stations = require_stations_array(payload)
    parsed = tuple(_parse_station(raw, idx) for idx, raw in enumerate(stations))

    last_updated = parse_feed_timestamp(payload.get("last_updated"))
    if last_updated is None:
        last_updated = as_utc(now) if now is not None else utc_now()

    return RetailerSnapshot(retailer_name=retailer_name, last_updated=last_updated, stations=parsed)
