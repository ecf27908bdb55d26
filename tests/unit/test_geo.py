"""
Unit tests for GeoFilter
"""

import math

import pytest

from carefinder.services.geo import GeoFilter
from carefinder.vectorstore.vector_math import haversine_km


CENTER = (77.5946, 12.9716)  # (longitude, latitude)


def _point_north(center, km):
    """Point `km` due north of `center` along the meridian."""
    lon, lat = center
    return (lon, lat + math.degrees(km / 6371.0))


def test_annotate_distance_matches_haversine():
    point = (77.6408, 12.9784)

    assert GeoFilter.annotate_distance(point, CENTER) == haversine_km(point, CENTER)


def test_radius_boundary_is_inclusive():
    point = _point_north(CENTER, 5.0)
    exact = haversine_km(point, CENTER)

    assert GeoFilter.within_radius(point, CENTER, exact)


def test_radius_just_beyond_is_excluded():
    point = _point_north(CENTER, 5.0)
    exact = haversine_km(point, CENTER)

    assert not GeoFilter.within_radius(point, CENTER, exact - 1e-6)
    assert not GeoFilter.within_radius(_point_north(CENTER, 5.001), CENTER, 5.0)


def test_center_is_within_zero_radius():
    assert GeoFilter.within_radius(CENTER, CENTER, 0.0)


def test_distance_along_meridian():
    assert GeoFilter.annotate_distance(_point_north(CENTER, 10.0), CENTER) == pytest.approx(10.0, rel=1e-6)
