"""Query criteria parsing and validation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from fuelwatch.common.constants import SORT_KEYS
from fuelwatch.common.errors import InvalidCriteria
from fuelwatch.common.geometry import EARTH_RADIUS, is_valid_location
from fuelwatch.common.models import Location


@dataclass(frozen=True)
class QueryCriteria:
    fuel_type: str | None = None
    postcode: str | None = None
    location: Location | None = None
    max_distance: float | None = None
    min_price: float | None = None
    max_price: float | None = None
    sort_by: str | None = None
    limit: int | None = None
    retailer: str | None = None
    unit: str = "mi"

    def to_dict(self) -> dict[str, Any]:
        return {
            "fuel_type": self.fuel_type,
            "postcode": self.postcode,
            "location": self.location.to_dict() if self.location is not None else None,
            "max_distance": self.max_distance,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "sort_by": self.sort_by,
            "limit": self.limit,
            "retailer": self.retailer,
            "unit": self.unit,
        }


def _optional_str(raw: Mapping[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_float(raw: Mapping[str, Any], key: str) -> float | None:
    value = raw.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise InvalidCriteria(f"{key} must be numeric")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidCriteria(f"{key} must be numeric, got {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidCriteria(f"{key} must be finite")
    return number


def _optional_int(raw: Mapping[str, Any], key: str) -> int | None:
    value = raw.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise InvalidCriteria(f"{key} must be an integer")
    try:
        return int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidCriteria(f"{key} must be an integer, got {value!r}") from exc


def validate_criteria(criteria: QueryCriteria) -> QueryCriteria:
    if criteria.unit not in EARTH_RADIUS:
        raise InvalidCriteria(f"unit must be one of: {', '.join(sorted(EARTH_RADIUS))}")
    if criteria.sort_by is not None and criteria.sort_by not in SORT_KEYS:
        raise InvalidCriteria(f"sort_by must be one of: {', '.join(SORT_KEYS)}")
    if criteria.fuel_type is None:
        if criteria.min_price is not None or criteria.max_price is not None:
            raise InvalidCriteria("min_price/max_price require fuel_type")
        if criteria.sort_by == "price":
            raise InvalidCriteria("sort_by=price requires fuel_type")
    if (
        criteria.min_price is not None
        and criteria.max_price is not None
        and criteria.min_price > criteria.max_price
    ):
        raise InvalidCriteria("min_price must not exceed max_price")
    if criteria.max_distance is not None and criteria.max_distance <= 0:
        raise InvalidCriteria("max_distance must be positive")
    if criteria.limit is not None and criteria.limit < 0:
        raise InvalidCriteria("limit must not be negative")
    if criteria.location is not None and not is_valid_location(criteria.location):
        raise InvalidCriteria("lat/lng must be in range and non-zero")
    return criteria


def parse_criteria(raw: Mapping[str, Any]) -> QueryCriteria:
    """Build criteria from loosely typed caller input (query strings, CLI args)."""
    lat = _optional_float(raw, "lat")
    lng = _optional_float(raw, "lng")
    if (lat is None) != (lng is None):
        raise InvalidCriteria("lat and lng must be given together")
    location = Location(latitude=lat, longitude=lng) if lat is not None and lng is not None else None

    fuel_type = _optional_str(raw, "fuel_type")
    sort_by = _optional_str(raw, "sort_by")
    limit = _optional_int(raw, "limit")

    criteria = QueryCriteria(
        fuel_type=fuel_type.upper() if fuel_type else None,
        postcode=_optional_str(raw, "postcode"),
        location=location,
        max_distance=_optional_float(raw, "max_distance"),
        min_price=_optional_float(raw, "min_price"),
        max_price=_optional_float(raw, "max_price"),
        sort_by=sort_by.lower() if sort_by else None,
        limit=limit or None,
        retailer=_optional_str(raw, "retailer"),
        unit=(_optional_str(raw, "unit") or "mi").lower(),
    )
    return validate_criteria(criteria)
