import math

import pytest

from fuelwatch.common.errors import InvalidCriteria
from fuelwatch.common.geometry import haversine_distance, is_valid_location
from fuelwatch.common.models import Location

LONDON = Location(latitude=51.5074, longitude=-0.1278)
MANCHESTER = Location(latitude=53.4808, longitude=-2.2426)


def test_haversine_is_symmetric_and_zero_on_identity():
    assert haversine_distance(LONDON, MANCHESTER) == pytest.approx(haversine_distance(MANCHESTER, LONDON))
    assert haversine_distance(LONDON, LONDON) == pytest.approx(0.0, abs=1e-9)


def test_haversine_known_distance_in_miles_and_km():
    miles = haversine_distance(LONDON, MANCHESTER, unit="mi")
    km = haversine_distance(LONDON, MANCHESTER, unit="km")
    assert miles == pytest.approx(163, abs=2)
    assert km == pytest.approx(262, abs=3)
    assert km / miles == pytest.approx(6371 / 3959)


def test_haversine_rejects_unknown_unit():
    with pytest.raises(InvalidCriteria):
        haversine_distance(LONDON, MANCHESTER, unit="nm")


def test_is_valid_location():
    assert is_valid_location(LONDON)
    assert not is_valid_location(None)
    assert not is_valid_location(Location(latitude=0.0, longitude=0.0))
    assert not is_valid_location(Location(latitude=51.5, longitude=0.0))
    assert not is_valid_location(Location(latitude=math.nan, longitude=-0.1))
    assert not is_valid_location(Location(latitude=95.0, longitude=-0.1))
