import pytest

from fuelwatch.common.models import AggregatedRecord, PriceStat
from fuelwatch.pipeline.stats import compute_price_stats

from factories import make_station


def test_stats_per_fuel_type(london_records):
    stats = compute_price_stats(london_records, ["E10", "B7", "SDV"])

    assert (stats["E10"].min, stats["E10"].max, stats["E10"].count) == (135.0, 140.9, 2)
    assert stats["E10"].avg == pytest.approx(137.95, abs=0.06)
    assert (stats["B7"].min, stats["B7"].max, stats["B7"].count) == (150.9, 152.0, 2)
    assert "SDV" not in stats


def test_stats_ignore_non_positive_prices():
    records = [
        AggregatedRecord(station=make_station("A", E10=0.0), retailer="Asda"),
        AggregatedRecord(station=make_station("B", E10=-5.0), retailer="Asda"),
        AggregatedRecord(station=make_station("C", E10=139.9), retailer="Asda"),
    ]
    assert compute_price_stats(records, ["E10"]) == {"E10": PriceStat(min=139.9, max=139.9, avg=139.9, count=1)}


def test_stats_empty_records():
    assert compute_price_stats([], ["E10", "E5"]) == {}
