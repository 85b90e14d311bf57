from __future__ import annotations

import pytest

from factories import make_station
from fuelwatch.common.models import AggregatedRecord


@pytest.fixture
def london_records() -> list[AggregatedRecord]:
    return [
        AggregatedRecord(station=make_station("A", E10=140.9, B7=150.9), retailer="Asda"),
        AggregatedRecord(station=make_station("B", postcode="SW1A 2AA", lat=51.503, lon=-0.128, E10=135.0), retailer="Tesco"),
        AggregatedRecord(station=make_station("C", postcode="EC1A 1BB", lat=51.52, lon=-0.1, B7=152.0), retailer="BP"),
    ]
