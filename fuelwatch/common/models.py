"""Data models used across the pipeline."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Mapping

from fuelwatch.common.time_utils import format_timestamp


@dataclass(frozen=True)
class RetailerConfig:
    name: str
    url: str
    enabled: bool = True


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Station:
    site_id: str
    brand: str
    address: str
    postcode: str
    location: Location | None
    prices: Mapping[str, float] = field(default_factory=dict)

    def price(self, fuel_type: str) -> float | None:
        """Price for a fuel type, or None when the station does not sell it."""
        value = self.prices.get(fuel_type)
        if value is None or not math.isfinite(value) or value <= 0:
            return None
        return value

    def to_dict(self) -> dict[str, Any]:
        return {
            "site_id": self.site_id,
            "brand": self.brand,
            "address": self.address,
            "postcode": self.postcode,
            "location": self.location.to_dict() if self.location is not None else None,
            "prices": dict(self.prices),
        }


@dataclass(frozen=True)
class RetailerSnapshot:
    retailer_name: str
    last_updated: datetime
    stations: tuple[Station, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_updated": format_timestamp(self.last_updated),
            "stations": [station.to_dict() for station in self.stations],
        }


@dataclass(frozen=True)
class AggregatedRecord:
    station: Station
    retailer: str
    distance: float | None = None

    def price(self, fuel_type: str) -> float | None:
        return self.station.price(fuel_type)

    def to_dict(self) -> dict[str, Any]:
        out = self.station.to_dict()
        out["retailer"] = self.retailer
        if self.distance is not None:
            out["distance"] = round(self.distance, 1)
        return out


@dataclass(frozen=True)
class PriceStat:
    min: float
    max: float
    avg: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FetchResult:
    retailer: str
    success: bool
    station_count: int | None = None
    error: str | None = None
    error_code: str | None = None
    snapshot: RetailerSnapshot | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "retailer": self.retailer,
            "success": self.success,
            "station_count": self.station_count,
            "error": self.error,
        }


@dataclass(frozen=True)
class ArchiveDecision:
    archive: bool
    reason: str | None = None
    changed_stations: int = 0


@dataclass(frozen=True)
class IngestResult:
    retailer: str
    written: bool
    archived: bool
    reason: str | None = None
    error: str | None = None
    error_code: str | None = None
