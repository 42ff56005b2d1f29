"""
Error taxonomy.

- `FetchCancelledError` is a control-flow outcome (a superseded load), never shown to users.
- `RepositoryError` wraps transport/status failures from repository adapters.
- `GeolocationError` carries a provider error code so the UI can pick a message.
- `InvalidInputError` is raised for malformed pairs and radii (`Coordinate.from_lnglat`, `search_box`);
  field ranges are enforced by pydantic `ValidationError`.
"""

from __future__ import annotations

from typing import Literal

GeolocationErrorCode = Literal[
    "permission_denied",
    "position_unavailable",
    "timeout",
    "unsupported",
    "unknown",
]


class SpotSyncError(Exception):
    """Base class for engine errors."""


class InvalidInputError(SpotSyncError, ValueError):
    """Raised when a caller passes malformed bounds/coordinates."""


class FetchCancelledError(SpotSyncError):
    """Raised by a repository when a load was aborted because it was superseded."""


class RepositoryError(SpotSyncError):
    """Raised by repository adapters on transport or upstream failures."""


class GeolocationError(SpotSyncError):
    """Raised by a geolocation provider when a position cannot be obtained."""

    def __init__(self, code: GeolocationErrorCode, message: str | None = None):
        super().__init__(message or code)
        self.code: GeolocationErrorCode = code
