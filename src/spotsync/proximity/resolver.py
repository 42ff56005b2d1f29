from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from spotsync.core.errors import InvalidInputError
from spotsync.core.geo import haversine_m
from spotsync.domain.models import Bounds, Coordinate, Spot

# Rough meters per degree of latitude, used only to size repository search boxes.
METERS_PER_DEGREE = 111_000.0


@dataclass(frozen=True)
class FacilityCandidate:
    type: str
    coordinates: Coordinate | None
    name: str | None = None


@dataclass(frozen=True)
class NearbyFacility:
    type: str
    coordinates: Coordinate
    distance_m: float
    name: str | None = None


@dataclass(frozen=True)
class SpotWithFacilities:
    spot: Spot
    facilities: list[NearbyFacility] = field(default_factory=list)


def resolve_nearby(
    origin: Coordinate,
    candidates: Iterable[FacilityCandidate],
    radius_by_type: Mapping[str, float],
) -> list[NearbyFacility]:
    """Return the candidates within their type's radius of `origin`, annotated with distance.

    Candidates without coordinates, or whose type has no configured radius, are skipped.
    Output order follows input order.
    """
    out: list[NearbyFacility] = []
    for c in candidates:
        if c.coordinates is None:
            continue
        radius = radius_by_type.get(c.type)
        if radius is None:
            continue
        d = haversine_m(origin, c.coordinates)
        if d <= float(radius):
            out.append(NearbyFacility(type=c.type, coordinates=c.coordinates, distance_m=d, name=c.name))
    return out


def spot_facility_candidates(spot: Spot) -> list[FacilityCandidate]:
    """Expand a spot's optional facility coordinates into typed candidates."""
    return [
        FacilityCandidate(type="toilet", coordinates=spot.nearby_toilet_coordinates, name=spot.name),
        FacilityCandidate(type="convenience", coordinates=spot.nearby_convenience_coordinates, name=spot.name),
        FacilityCandidate(type="bath", coordinates=spot.nearby_bath_coordinates, name=spot.name),
    ]


def find_spots_with_nearby_facilities(
    origin: Coordinate,
    spots: Iterable[Spot],
    radius_by_type: Mapping[str, float],
) -> list[SpotWithFacilities]:
    """For each spot, keep the facilities within range of `origin`; drop spots with none."""
    out: list[SpotWithFacilities] = []
    for spot in spots:
        facilities = resolve_nearby(origin, spot_facility_candidates(spot), radius_by_type)
        if facilities:
            out.append(SpotWithFacilities(spot=spot, facilities=facilities))
    return out


def search_box(origin: Coordinate, radius_m: float) -> Bounds:
    """Bounding rectangle that covers `radius_m` around `origin` (degree approximation).

    Repositories are queried with this box; exact filtering is done by `resolve_nearby`.
    """
    r = float(radius_m)
    if r <= 0:
        raise InvalidInputError("radius_m must be > 0")
    lat_range = r / METERS_PER_DEGREE
    # Clamp the cosine so boxes near the poles stay finite.
    cos_lat = max(1e-6, math.cos(math.radians(origin.latitude)))
    lng_range = r / (METERS_PER_DEGREE * cos_lat)
    return Bounds(
        north=min(90.0, origin.latitude + lat_range),
        south=max(-90.0, origin.latitude - lat_range),
        east=origin.longitude + lng_range,
        west=origin.longitude - lng_range,
    )
