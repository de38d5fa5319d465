"""
Geolocation helpers for location-based matching between users and events.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from link_app.features.coordination.domain import GeoPoint

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 110.574
KM_PER_DEGREE_LON_AT_EQUATOR = 111.32

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


def parse_coordinate(value: Any) -> float | None:
    """Parse a latitude/longitude given as number or string; None if unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return parsed


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points using the haversine formula."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounding_box(lat: float, lon: float, radius_km: float) -> BoundingBox:
    """
    Approximate degree bounds around a point.

    Cheap pre-filter only; the radius test itself must use ``distance_km``.
    """
    lat_delta = radius_km / KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(lat))
    if abs(cos_lat) < 1e-12:
        # At the poles every longitude is within reach.
        lon_delta = 180.0
    else:
        lon_delta = abs(radius_km / (KM_PER_DEGREE_LON_AT_EQUATOR * cos_lat))

    return BoundingBox(
        min_lat=lat - lat_delta,
        max_lat=lat + lat_delta,
        min_lon=lon - lon_delta,
        max_lon=lon + lon_delta,
    )


def coordinates_of(candidate: Any) -> tuple[float, float] | None:
    """
    Extract (lat, lon) from a candidate.

    Accepts a GeoPoint, a mapping or object with ``latitude``/``longitude``,
    or an object with a ``location`` GeoPoint.
    """
    if isinstance(candidate, GeoPoint):
        return candidate.latitude, candidate.longitude

    if isinstance(candidate, Mapping):
        raw_lat, raw_lon = candidate.get("latitude"), candidate.get("longitude")
        if raw_lat is None and raw_lon is None:
            raw_lat, raw_lon = candidate.get("lat"), candidate.get("lon")
    else:
        location = getattr(candidate, "location", None)
        if isinstance(location, GeoPoint):
            return location.latitude, location.longitude
        raw_lat = getattr(candidate, "latitude", None)
        raw_lon = getattr(candidate, "longitude", None)

    lat, lon = parse_coordinate(raw_lat), parse_coordinate(raw_lon)
    if lat is None or lon is None:
        return None
    return lat, lon


def within_radius(center: GeoPoint, radius_km: float, candidates: Iterable[T]) -> list[T]:
    """Candidates within ``radius_km`` of ``center``, input order preserved."""
    box = bounding_box(center.latitude, center.longitude, radius_km)
    matches = []
    for candidate in candidates:
        coords = coordinates_of(candidate)
        if coords is None:
            continue
        lat, lon = coords
        # Longitude wrap-around near the antimeridian defeats the box check.
        if box.min_lon >= -180 and box.max_lon <= 180 and not box.contains(lat, lon):
            continue
        if distance_km(center.latitude, center.longitude, lat, lon) <= radius_km:
            matches.append(candidate)
    return matches
