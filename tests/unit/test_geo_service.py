"""
Tests for distance, bounding box and radius filtering.
"""

import pytest

from link_app.features.coordination.domain import GeoPoint, User
from link_app.features.coordination.services.geo_service import (
    KM_PER_DEGREE_LAT,
    bounding_box,
    coordinates_of,
    distance_km,
    parse_coordinate,
    within_radius,
)

MANHATTAN = GeoPoint(latitude=40.7128, longitude=-74.0060)


def test_distance_to_self_is_zero():
    assert distance_km(40.7128, -74.0060, 40.7128, -74.0060) == 0


def test_distance_is_symmetric():
    there = distance_km(40.7128, -74.0060, 42.3601, -71.0589)
    back = distance_km(42.3601, -71.0589, 40.7128, -74.0060)

    assert there == pytest.approx(back)
    # New York to Boston is roughly 306 km as the crow flies
    assert 300 < there < 312


def test_bounding_box_uses_degree_approximations():
    box = bounding_box(0.0, 0.0, 110.574)

    assert box.max_lat == pytest.approx(1.0)
    assert box.min_lat == pytest.approx(-1.0)
    assert box.max_lon == pytest.approx(110.574 / 111.32)
    assert box.contains(0.5, 0.5)
    assert not box.contains(1.5, 0.0)


def test_bounding_box_at_pole_spans_all_longitudes():
    box = bounding_box(90.0, 0.0, 10)

    assert box.min_lon <= -180
    assert box.max_lon >= 180
    assert box.min_lat == pytest.approx(90 - 10 / KM_PER_DEGREE_LAT)


@pytest.mark.parametrize(
    "value,expected",
    [(40.5, 40.5), ("40.5", 40.5), (" -73.9 ", -73.9), ("abc", None), (None, None), ("nan", None)],
)
def test_parse_coordinate(value, expected):
    assert parse_coordinate(value) == expected


def test_coordinates_of_supported_shapes():
    user = User(id=1, username="a", location=GeoPoint(1.0, 2.0))

    assert coordinates_of(user) == (1.0, 2.0)
    assert coordinates_of({"latitude": "3.5", "longitude": "4"}) == (3.5, 4.0)
    assert coordinates_of({"lat": 5, "lon": 6}) == (5.0, 6.0)
    assert coordinates_of(GeoPoint(7.0, 8.0)) == (7.0, 8.0)
    assert coordinates_of(User(id=2, username="b")) is None


def test_within_radius_excludes_far_and_unparsable_candidates():
    near = {"id": 1, "latitude": "40.6782", "longitude": "-73.9442"}  # Brooklyn, ~6 km
    far = {"id": 2, "latitude": 42.3601, "longitude": -71.0589}  # Boston
    broken = {"id": 3, "latitude": "not-a-number", "longitude": "-73.9"}
    missing = {"id": 4}

    result = within_radius(MANHATTAN, 25, [far, near, broken, missing])

    assert result == [near]


def test_within_radius_keeps_point_inside_box_corner_only_when_distance_allows():
    # Inside the square box but outside the circle
    box = bounding_box(MANHATTAN.latitude, MANHATTAN.longitude, 10)
    corner = {"latitude": box.max_lat - 0.001, "longitude": box.max_lon - 0.001}

    assert within_radius(MANHATTAN, 10, [corner]) == []


def test_within_radius_across_antimeridian():
    center = GeoPoint(latitude=0.0, longitude=179.95)
    other_side = {"latitude": 0.0, "longitude": -179.95}  # about 11 km away

    assert within_radius(center, 20, [other_side]) == [other_side]
