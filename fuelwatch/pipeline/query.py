"""Geospatial and price filtering, ranking and truncation of aggregated records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Sequence

from fuelwatch.common.constants import DEFAULT_COORDINATE_MAX_DISTANCE, DEFAULT_POSTCODE_MAX_DISTANCE
from fuelwatch.common.deterministic import stable_sorted
from fuelwatch.common.errors import GeocodeUnavailable
from fuelwatch.common.geocoder import Geocoder
from fuelwatch.common.geometry import haversine_distance, is_valid_location
from fuelwatch.common.logging import log_event
from fuelwatch.common.models import AggregatedRecord, Location
from fuelwatch.common.postcode import postcode_has_prefix
from fuelwatch.pipeline.criteria import QueryCriteria, validate_criteria

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedLocation:
    location: Location | None
    max_distance: float | None
    # Set when the postcode could not be geocoded and prefix matching applies.
    postcode_prefix: str | None = None

    @property
    def degraded(self) -> bool:
        return self.postcode_prefix is not None


@dataclass(frozen=True)
class QueryOutcome:
    records: tuple[AggregatedRecord, ...]
    total_matches: int
    location: Location | None
    degraded: bool


def filter_by_fuel_type(records: Iterable[AggregatedRecord], fuel_type: str | None) -> list[AggregatedRecord]:
    if not fuel_type:
        return list(records)
    return [record for record in records if record.price(fuel_type) is not None]


def resolve_location(criteria: QueryCriteria, geocoder: Geocoder | None) -> ResolvedLocation:
    if criteria.location is not None:
        max_distance = criteria.max_distance if criteria.max_distance is not None else DEFAULT_COORDINATE_MAX_DISTANCE
        return ResolvedLocation(location=criteria.location, max_distance=max_distance)

    if not criteria.postcode:
        return ResolvedLocation(location=None, max_distance=None)

    max_distance = criteria.max_distance if criteria.max_distance is not None else DEFAULT_POSTCODE_MAX_DISTANCE
    if geocoder is None:
        reason = "geocoder disabled"
    else:
        try:
            location = geocoder.lookup(criteria.postcode)
            if not is_valid_location(location):
                raise GeocodeUnavailable(f"unusable coordinates {location} for {criteria.postcode}")
            return ResolvedLocation(location=location, max_distance=max_distance)
        except GeocodeUnavailable as exc:
            reason = str(exc)

    log_event(
        logger,
        f"falling back to postcode prefix match for {criteria.postcode!r}: {reason}",
        level=logging.WARNING,
        event="GEOCODE_FALLBACK",
        status="degraded",
        error_code=GeocodeUnavailable.error_code,
    )
    return ResolvedLocation(location=None, max_distance=None, postcode_prefix=criteria.postcode)


def filter_by_postcode_prefix(records: Iterable[AggregatedRecord], prefix: str) -> list[AggregatedRecord]:
    return [record for record in records if postcode_has_prefix(record.station.postcode, prefix)]


def filter_by_distance(
    records: Iterable[AggregatedRecord],
    origin: Location,
    max_distance: float,
    *,
    unit: str,
) -> list[AggregatedRecord]:
    """Attach distances and keep records within range; records without coordinates drop out."""
    kept: list[AggregatedRecord] = []
    for record in records:
        if not is_valid_location(record.station.location):
            continue
        distance = haversine_distance(origin, record.station.location, unit=unit)
        if distance <= max_distance:
            kept.append(replace(record, distance=distance))
    return kept


def filter_by_price(
    records: Iterable[AggregatedRecord],
    fuel_type: str,
    min_price: float | None,
    max_price: float | None,
) -> list[AggregatedRecord]:
    kept: list[AggregatedRecord] = []
    for record in records:
        price = record.price(fuel_type)
        if price is None:
            continue
        if min_price is not None and price < min_price:
            continue
        if max_price is not None and price > max_price:
            continue
        kept.append(record)
    return kept


def sort_records(
    records: Sequence[AggregatedRecord],
    sort_by: str | None,
    *,
    fuel_type: str | None,
    has_location: bool,
) -> list[AggregatedRecord]:
    if sort_by == "distance":
        if not has_location:
            return list(records)
        return stable_sorted(records, key=lambda record: record.distance)
    if sort_by == "price" and fuel_type:
        return stable_sorted(records, key=lambda record: record.price(fuel_type))
    if sort_by == "retailer":
        return stable_sorted(records, key=lambda record: record.retailer)
    return list(records)


def apply_limit(records: Sequence[AggregatedRecord], limit: int | None) -> list[AggregatedRecord]:
    if not limit:
        return list(records)
    return list(records[:limit])


def run_query(
    records: Sequence[AggregatedRecord],
    criteria: QueryCriteria,
    geocoder: Geocoder | None = None,
) -> QueryOutcome:
    criteria = validate_criteria(criteria)

    selected = filter_by_fuel_type(records, criteria.fuel_type)

    resolved = resolve_location(criteria, geocoder)
    if resolved.location is not None and resolved.max_distance is not None:
        selected = filter_by_distance(selected, resolved.location, resolved.max_distance, unit=criteria.unit)
    elif resolved.postcode_prefix is not None:
        selected = filter_by_postcode_prefix(selected, resolved.postcode_prefix)

    if criteria.fuel_type and (criteria.min_price is not None or criteria.max_price is not None):
        selected = filter_by_price(selected, criteria.fuel_type, criteria.min_price, criteria.max_price)

    ranked = sort_records(
        selected,
        criteria.sort_by,
        fuel_type=criteria.fuel_type,
        has_location=resolved.location is not None,
    )
    limited = apply_limit(ranked, criteria.limit)

    return QueryOutcome(
        records=tuple(limited),
        total_matches=len(ranked),
        location=resolved.location,
        degraded=resolved.degraded,
    )
