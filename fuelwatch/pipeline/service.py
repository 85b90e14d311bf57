"""Read-path query interface over current retailer snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from fuelwatch.common.constants import DEFAULT_FUEL_TYPES
from fuelwatch.common.geocoder import Geocoder
from fuelwatch.common.models import AggregatedRecord, Location, PriceStat, RetailerSnapshot
from fuelwatch.common.time_utils import format_timestamp
from fuelwatch.pipeline.aggregate import aggregate, filter_snapshots_by_retailer
from fuelwatch.pipeline.criteria import QueryCriteria
from fuelwatch.pipeline.query import run_query
from fuelwatch.pipeline.stats import compute_price_stats


@dataclass(frozen=True)
class QueryResult:
    records: tuple[AggregatedRecord, ...]
    last_updated: datetime | None
    price_stats: dict[str, PriceStat]
    degraded: bool
    total_matches: int
    location: Location | None
    criteria: QueryCriteria

    def to_dict(self) -> dict[str, Any]:
        return {
            "records": [record.to_dict() for record in self.records],
            "last_updated": format_timestamp(self.last_updated) if self.last_updated is not None else None,
            "price_stats": {fuel: stat.to_dict() for fuel, stat in self.price_stats.items()},
            "degraded": self.degraded,
            "total_matches": self.total_matches,
            "location": self.location.to_dict() if self.location is not None else None,
            "criteria": self.criteria.to_dict(),
        }


def stats_fuel_types(criteria: QueryCriteria, defaults: Sequence[str]) -> list[str]:
    fuel_types = list(defaults)
    if criteria.fuel_type and criteria.fuel_type not in fuel_types:
        fuel_types.append(criteria.fuel_type)
    return fuel_types


def query_snapshots(
    snapshots: Sequence[RetailerSnapshot],
    criteria: QueryCriteria,
    *,
    geocoder: Geocoder | None = None,
    fuel_types: Sequence[str] = DEFAULT_FUEL_TYPES,
    sources_degraded: bool = False,
) -> QueryResult:
    """Run a query over the given snapshots.

    ``sources_degraded`` marks the result degraded when some snapshots could
    not be loaded.
    """
    selected = filter_snapshots_by_retailer(snapshots, criteria.retailer)
    aggregation = aggregate(selected)
    outcome = run_query(aggregation.records, criteria, geocoder)
    price_stats = compute_price_stats(outcome.records, stats_fuel_types(criteria, fuel_types))

    return QueryResult(
        records=outcome.records,
        last_updated=aggregation.last_updated,
        price_stats=price_stats,
        degraded=outcome.degraded or sources_degraded,
        total_matches=outcome.total_matches,
        location=outcome.location,
        criteria=criteria,
    )
