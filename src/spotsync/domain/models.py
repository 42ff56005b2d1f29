"""
Domain models (Pydantic).

These types are the stable contract between the map UI, the spot repository and
the engine:
- viewport geometry (`Coordinate`, `Bounds`)
- the filter snapshot attached to every load (`FilterSnapshot`)
- repository entities (`Spot`, `SpotPage`)
- user submissions checked for duplicates (`SubmissionCandidate`)

All geometry types are frozen so they can be shared between pending requests and
the coordinator's baseline without copying.
"""

from __future__ import annotations

import math
from typing import Any, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from spotsync.core.errors import InvalidInputError

FacilityType = Literal["toilet", "convenience", "bath"]
SubmissionStatus = Literal["pending", "approved", "rejected"]

# Form sentinel meaning "no filter selected".
ALL_FILTER_VALUE = "all"


def _require_finite(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("value must be a finite number")
    return value


class Coordinate(BaseModel):
    """A longitude/latitude pair in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)

    @field_validator("longitude", "latitude")
    @classmethod
    def _finite(cls, v: float) -> float:
        return _require_finite(v)

    @classmethod
    def from_lnglat(cls, pair: Sequence[float]) -> "Coordinate":
        """Build from a GeoJSON-style `[lng, lat]` pair."""
        if len(pair) != 2:
            raise InvalidInputError("coordinate pair must have exactly two elements [lng, lat]")
        return cls(longitude=float(pair[0]), latitude=float(pair[1]))

    def as_lnglat(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)


class Bounds(BaseModel):
    """A rectangular viewport in degrees (no antimeridian handling)."""

    model_config = ConfigDict(frozen=True)

    north: float = Field(..., ge=-90, le=90)
    south: float = Field(..., ge=-90, le=90)
    east: float
    west: float

    @field_validator("north", "south", "east", "west")
    @classmethod
    def _finite(cls, v: float) -> float:
        return _require_finite(v)

    @model_validator(mode="after")
    def _validate_order(self) -> "Bounds":
        if self.north <= self.south:
            raise ValueError("bounds.north must be greater than bounds.south")
        return self

    @property
    def lat_span(self) -> float:
        return self.north - self.south

    @property
    def lng_span(self) -> float:
        return self.east - self.west

    @property
    def center(self) -> Coordinate:
        return Coordinate(
            longitude=(self.east + self.west) / 2.0,
            latitude=(self.north + self.south) / 2.0,
        )


class FilterSnapshot(BaseModel):
    """Filters attached to a load; compared by value, never interpreted by the engine.

    Unknown keys are kept so callers can pass repository-specific filters through.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    search_term: str | None = None
    prefecture: str | None = None
    type: str | None = None

    @classmethod
    def from_form(
        cls,
        *,
        search_term: str = "",
        prefecture_filter: str = ALL_FILTER_VALUE,
        type_filter: str = ALL_FILTER_VALUE,
    ) -> "FilterSnapshot":
        """Normalize raw form state: blank search and the `all` sentinel mean "not set"."""
        return cls(
            search_term=search_term.strip() or None,
            prefecture=prefecture_filter if prefecture_filter != ALL_FILTER_VALUE else None,
            type=type_filter if type_filter != ALL_FILTER_VALUE else None,
        )

    def as_params(self) -> dict[str, Any]:
        """Return only the filters that are set (for query strings / repository calls)."""
        return {k: v for k, v in self.model_dump(mode="json").items() if v is not None}


class Spot(BaseModel):
    """A camping / overnight-parking spot as returned by the repository."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    coordinates: Coordinate
    prefecture: str | None = None
    type: str | None = None

    nearby_toilet_coordinates: Coordinate | None = None
    nearby_convenience_coordinates: Coordinate | None = None
    nearby_bath_coordinates: Coordinate | None = None

    distance_to_toilet: float | None = Field(default=None, ge=0)
    distance_to_convenience: float | None = Field(default=None, ge=0)
    distance_to_bath: float | None = Field(default=None, ge=0)

    @field_validator(
        "coordinates",
        "nearby_toilet_coordinates",
        "nearby_convenience_coordinates",
        "nearby_bath_coordinates",
        mode="before",
    )
    @classmethod
    def _accept_lnglat_pairs(cls, v: Any) -> Any:
        # The repository stores GeoJSON-style [lng, lat] arrays.
        if isinstance(v, (list, tuple)):
            return Coordinate.from_lnglat(v)
        return v


class SpotPage(BaseModel):
    """One repository response: the spots inside the viewport plus the total match count."""

    spots: list[Spot] = Field(default_factory=list)
    total: int = Field(0, ge=0)


class SubmissionCandidate(BaseModel):
    """A user-submitted spot (new candidate or existing submission)."""

    model_config = ConfigDict(frozen=True)

    name: str
    prefecture: str
    coordinates: Coordinate | None = None
    id: str | None = None
    status: SubmissionStatus | None = None

    @field_validator("coordinates", mode="before")
    @classmethod
    def _accept_lnglat_pair(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return Coordinate.from_lnglat(v)
        return v
