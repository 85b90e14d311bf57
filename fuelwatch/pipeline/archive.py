"""Decide whether an incoming snapshot is worth archiving.

A snapshot archives when there is no prior snapshot for the retailer, when the
prior snapshot is at least ``ARCHIVE_MAX_AGE_HOURS`` old, or when more than
``ARCHIVE_CHANGE_FRACTION`` of the incoming stations changed materially. A
station changed materially when it is new, or when any of its fuel prices is
new or moved by more than ``ARCHIVE_PRICE_TOLERANCE`` minor units.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from fuelwatch.common.constants import ARCHIVE_CHANGE_FRACTION, ARCHIVE_MAX_AGE_HOURS, ARCHIVE_PRICE_TOLERANCE
from fuelwatch.common.models import ArchiveDecision, RetailerSnapshot, Station
from fuelwatch.common.time_utils import as_utc, utc_now

REASON_FIRST_WRITE = "first-write"
REASON_STALE = "stale>24h"
REASON_CHANGED = "changed>5%"


def station_changed(prior: Station | None, current: Station, *, tolerance: float = ARCHIVE_PRICE_TOLERANCE) -> bool:
    if prior is None:
        return True
    for fuel_type, price in current.prices.items():
        prior_price = prior.prices.get(fuel_type)
        if prior_price is None or prior_price <= 0:
            return True
        if abs(price - prior_price) > tolerance:
            return True
    return False


def count_material_changes(prior: RetailerSnapshot, current: RetailerSnapshot) -> int:
    prior_by_id = {station.site_id: station for station in prior.stations}
    return sum(1 for station in current.stations if station_changed(prior_by_id.get(station.site_id), station))


def decide_archive(
    prior: RetailerSnapshot | None,
    current: RetailerSnapshot,
    *,
    now: datetime | None = None,
) -> ArchiveDecision:
    if prior is None:
        return ArchiveDecision(archive=True, reason=REASON_FIRST_WRITE, changed_stations=len(current.stations))

    now = as_utc(now) if now is not None else utc_now()
    if now - as_utc(prior.last_updated) >= timedelta(hours=ARCHIVE_MAX_AGE_HOURS):
        return ArchiveDecision(archive=True, reason=REASON_STALE, changed_stations=count_material_changes(prior, current))

    changed = count_material_changes(prior, current)
    total = len(current.stations)
    if total and changed / total > ARCHIVE_CHANGE_FRACTION:
        return ArchiveDecision(archive=True, reason=REASON_CHANGED, changed_stations=changed)

    return ArchiveDecision(archive=False, reason=None, changed_stations=changed)
