"""Per-fuel-type price statistics over a filtered record set."""

from __future__ import annotations

from typing import Iterable, Sequence

from fuelwatch.common.models import AggregatedRecord, PriceStat


def compute_price_stats(records: Sequence[AggregatedRecord], fuel_types: Iterable[str]) -> dict[str, PriceStat]:
    """Fuel types with no positive price in ``records`` are left out of the result."""
    stats: dict[str, PriceStat] = {}
    for fuel_type in fuel_types:
        if fuel_type in stats:
            continue
        prices = [price for price in (record.price(fuel_type) for record in records) if price is not None]
        if not prices:
            continue
        stats[fuel_type] = PriceStat(
            min=min(prices),
            max=max(prices),
            avg=round(sum(prices) / len(prices), 1),
            count=len(prices),
        )
    return stats
