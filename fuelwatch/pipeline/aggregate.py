"""Merge per-retailer snapshots into one tagged record collection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from fuelwatch.common.models import AggregatedRecord, RetailerSnapshot


@dataclass(frozen=True)
class Aggregation:
    records: tuple[AggregatedRecord, ...]
    last_updated: datetime | None


def matches_retailer(name: str, fragment: str | None) -> bool:
    """Case-insensitive substring match; an empty fragment matches everything."""
    if not fragment or not fragment.strip():
        return True
    return fragment.strip().casefold() in name.casefold()


def filter_snapshots_by_retailer(snapshots: Iterable[RetailerSnapshot], fragment: str | None) -> list[RetailerSnapshot]:
    return [snapshot for snapshot in snapshots if matches_retailer(snapshot.retailer_name, fragment)]


def filter_records_by_retailer(records: Iterable[AggregatedRecord], fragment: str | None) -> list[AggregatedRecord]:
    return [record for record in records if matches_retailer(record.retailer, fragment)]


def aggregate(snapshots: Sequence[RetailerSnapshot]) -> Aggregation:
    records: list[AggregatedRecord] = []
    last_updated: datetime | None = None

    for snapshot in snapshots:
        records.extend(AggregatedRecord(station=station, retailer=snapshot.retailer_name) for station in snapshot.stations)
        if last_updated is None or snapshot.last_updated > last_updated:
            last_updated = snapshot.last_updated

    return Aggregation(records=tuple(records), last_updated=last_updated)
