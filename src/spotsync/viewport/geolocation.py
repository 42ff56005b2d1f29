"""
Geolocation seeding.

A provider (browser/OS bridge) supplies the user's position, which is turned into an
initial viewport. Failures are user-visible notifications, never engine crashes.
"""

from __future__ import annotations

from typing import Protocol

from spotsync.config.settings import GeolocationSettings
from spotsync.core.errors import GeolocationErrorCode
from spotsync.domain.models import Bounds, Coordinate
from spotsync.viewport.bounds import bounds_around

GEOLOCATION_ERROR_MESSAGES: dict[GeolocationErrorCode, str] = {
    "permission_denied": "Access to your location was denied",
    "position_unavailable": "Your location could not be determined",
    "timeout": "Timed out while getting your location",
    "unsupported": "This browser does not support geolocation",
    "unknown": "Failed to get your location",
}


class GeolocationProvider(Protocol):
    async def current_position(self) -> Coordinate: ...


def geolocation_error_message(code: str) -> str:
    return GEOLOCATION_ERROR_MESSAGES.get(code, GEOLOCATION_ERROR_MESSAGES["unknown"])  # type: ignore[call-overload]


def initial_bounds(position: Coordinate, settings: GeolocationSettings, *, zoom: float | None = None) -> Bounds:
    return bounds_around(
        position,
        zoom=settings.default_zoom if zoom is None else zoom,
        width_px=settings.viewport_width_px,
        height_px=settings.viewport_height_px,
        tile_size_px=settings.tile_size_px,
    )
