"""
Viewport geometry used by the load-skip decisions.

Bounds are plain lng/lat rectangles. There is no antimeridian or pole handling, and
the tolerances are degree-based.
"""

from __future__ import annotations

import math

from spotsync.domain.models import Bounds, Coordinate

_MAX_MERCATOR_LAT = 85.05112878


def is_contained(outer: Bounds | None, inner: Bounds, *, epsilon_deg: float = 1e-4) -> bool:
    """True when `inner` lies within `outer` on all four edges (within `epsilon_deg`)."""
    if outer is None:
        return False
    return (
        inner.north <= outer.north + epsilon_deg
        and inner.south >= outer.south - epsilon_deg
        and inner.east <= outer.east + epsilon_deg
        and inner.west >= outer.west - epsilon_deg
    )


def _ratio(diff: float, span: float) -> float:
    if span > 0:
        return diff / span
    return math.inf if diff > 0 else 0.0


def has_moved_significantly(old: Bounds | None, new: Bounds, *, threshold_ratio: float = 0.05) -> bool:
    """True when edge movement exceeds `threshold_ratio` of the new view's span on either axis."""
    if old is None:
        return True
    lat_diff = abs(new.north - old.north) + abs(new.south - old.south)
    lng_diff = abs(new.east - old.east) + abs(new.west - old.west)
    return (
        _ratio(lat_diff, new.lat_span) > threshold_ratio
        or _ratio(lng_diff, new.lng_span) > threshold_ratio
    )


def exceeds_span(bounds: Bounds, *, max_lng_span: float, max_lat_span: float) -> bool:
    return bounds.lng_span > max_lng_span or bounds.lat_span > max_lat_span


def _lat_to_world_y(lat: float) -> float:
    lat = max(-_MAX_MERCATOR_LAT, min(_MAX_MERCATOR_LAT, lat))
    s = math.sin(math.radians(lat))
    return 0.5 - math.log((1 + s) / (1 - s)) / (4 * math.pi)


def _world_y_to_lat(y: float) -> float:
    y = max(0.0, min(1.0, y))
    return math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * y))))


def bounds_around(
    center: Coordinate,
    *,
    zoom: float,
    width_px: int,
    height_px: int,
    tile_size_px: int = 512,
) -> Bounds:
    """Visible Web-Mercator bounds of a `width_px` x `height_px` map centred on `center` at `zoom`."""
    world_px = tile_size_px * (2.0 ** float(zoom))
    half_lng = (width_px / world_px) * 360.0 / 2.0
    half_y = (height_px / world_px) / 2.0

    y = _lat_to_world_y(center.latitude)
    return Bounds(
        north=_world_y_to_lat(y - half_y),
        south=_world_y_to_lat(y + half_y),
        east=center.longitude + half_lng,
        west=center.longitude - half_lng,
    )
