"""Tests for great-circle distance and proximity query validation."""

import pytest

from network.geo import bounding_box, haversine_km, validate_query
from services.topology_store import TopologyValidationError


def test_haversine_zero_distance():
    assert haversine_km(-6.2, 106.8, -6.2, 106.8) == 0


def test_haversine_one_degree_latitude():
    # One degree of latitude is ~111.19 km on a 6371 km sphere
    assert haversine_km(0, 10, 1, 10) == pytest.approx(111.19, abs=0.01)


def test_haversine_known_city_pair():
    # Jakarta -> Bandung, roughly 116 km as the crow flies
    distance = haversine_km(-6.2088, 106.8456, -6.9175, 107.6191)
    assert 110 < distance < 125


def test_haversine_is_symmetric():
    a = haversine_km(51.5, -0.12, 48.85, 2.35)
    b = haversine_km(48.85, 2.35, 51.5, -0.12)
    assert a == pytest.approx(b)


def test_bounding_box_contains_circle():
    min_lat, max_lat, min_lon, max_lon = bounding_box(-6.2, 106.8, 1.0)

    assert min_lat < -6.2 < max_lat
    assert min_lon < 106.8 < max_lon
    # The box edges are at least radius away from the centre
    assert haversine_km(-6.2, 106.8, max_lat, 106.8) >= 0.99
    assert haversine_km(-6.2, 106.8, -6.2, max_lon) >= 0.99


def test_bounding_box_near_antimeridian_skips_longitude():
    _, _, min_lon, max_lon = bounding_box(0.5, 179.999, 5.0)

    assert min_lon is None
    assert max_lon is None


def test_zero_zero_is_rejected():
    with pytest.raises(TopologyValidationError):
        validate_query(0, 0, 1.0)


@pytest.mark.parametrize("lat,lon", [(-6.2, None), (None, 106.8), (None, None)])
def test_missing_coordinate_is_rejected(lat, lon):
    with pytest.raises(TopologyValidationError, match="lat and lng are required"):
        validate_query(lat, lon, 1.0)


@pytest.mark.parametrize("radius_km", [0, -1, 100.5])
def test_radius_out_of_range(radius_km):
    with pytest.raises(TopologyValidationError):
        validate_query(-6.2, 106.8, radius_km)


def test_radius_upper_bound_inclusive():
    validate_query(-6.2, 106.8, 100.0)
