"""Great-circle distance helpers."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from fuelwatch.common.errors import InvalidCriteria

if TYPE_CHECKING:
    from fuelwatch.common.models import Location

EARTH_RADIUS = {
    "mi": 3959.0,
    "km": 6371.0,
}


def earth_radius(unit: str) -> float:
    try:
        return EARTH_RADIUS[unit]
    except KeyError as exc:
        raise InvalidCriteria(f"Unsupported distance unit: {unit!r}") from exc


def is_valid_location(location: Location | None) -> bool:
    """A usable point: present, finite, in range and not the (0, 0) placeholder."""
    if location is None:
        return False
    lat, lon = location.latitude, location.longitude
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    if lat == 0 or lon == 0:
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def haversine_distance(origin: Location, target: Location, *, unit: str = "mi") -> float:
    radius = earth_radius(unit)
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(target.longitude - origin.longitude)
    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return radius * c
