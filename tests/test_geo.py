"""Tests for geodesic helpers."""

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from trekmate.services.geo import (
    centroid,
    format_distance,
    haversine_distance,
    maps_link,
)

latitudes = st.floats(min_value=-90, max_value=90, allow_nan=False)
longitudes = st.floats(min_value=-180, max_value=180, allow_nan=False)


class TestHaversineDistance:
    """Great-circle distance."""

    def test_one_degree_of_longitude_at_equator(self):
        distance = haversine_distance(0.0, 0.0, 0.0, 1.0)
        assert distance == pytest.approx(111_195, rel=1e-3)

    def test_same_point_is_zero(self):
        assert haversine_distance(27.7, 85.3, 27.7, 85.3) == 0.0

    def test_antipodal_points(self):
        distance = haversine_distance(0.0, 0.0, 0.0, 180.0)
        assert distance == pytest.approx(math.pi * 6_371_000, rel=1e-6)

    @given(latitudes, longitudes, latitudes, longitudes)
    def test_symmetric_and_bounded(self, lat1, lon1, lat2, lon2):
        d1 = haversine_distance(lat1, lon1, lat2, lon2)
        d2 = haversine_distance(lat2, lon2, lat1, lon1)
        assert d1 == pytest.approx(d2, abs=1e-6)
        assert 0.0 <= d1 <= math.pi * 6_371_000 + 1e-6


class TestFormatDistance:
    """Human-readable distances."""

    def test_metres_below_one_kilometre(self):
        assert format_distance(850.4) == "850m"

    def test_kilometres_with_one_decimal(self):
        assert format_distance(1234) == "1.2km"
        assert format_distance(1000) == "1.0km"


class TestCentroid:
    """Mean position of a group."""

    def test_mean_of_points(self):
        lat, lon = centroid([(10.0, 20.0), (12.0, 22.0)])
        assert lat == pytest.approx(11.0)
        assert lon == pytest.approx(21.0)

    def test_single_point(self):
        assert centroid([(1.5, 2.5)]) == (1.5, 2.5)

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            centroid([])


def test_maps_link():
    assert maps_link(27.7, 85.3) == "https://maps.google.com/?q=27.7,85.3"
