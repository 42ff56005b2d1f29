from __future__ import annotations
from math import asin, cos, radians, sin, sqrt

from spotsync.domain.models import Coordinate

"""
Geospatial helpers.

We keep a tiny geometry layer here so the proximity, duplicate and viewport modules
can do distance calculations without pulling in heavier GIS dependencies.
"""

EARTH_RADIUS_M = 6_371_000


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.latitude)
    lon1 = radians(a.longitude)
    lat2 = radians(b.latitude)
    lon2 = radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push near-antipodal points just above 1.
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, h)))


def _parse_degrees(value: str) -> float | None:
    text = value.strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def distance_from_strings(lat1: str, lng1: str, lat2: str, lng2: str) -> float | None:
    """Distance in meters between two points typed into a form, or None if any value is invalid.

    Blank, non-numeric and out-of-range values all yield None instead of raising.
    """
    values = [_parse_degrees(v) for v in (lat1, lng1, lat2, lng2)]
    if any(v is None for v in values):
        return None
    la1, lo1, la2, lo2 = values
    try:
        a = Coordinate(latitude=la1, longitude=lo1)
        b = Coordinate(latitude=la2, longitude=lo2)
    except ValueError:
        return None
    return haversine_m(a, b)
