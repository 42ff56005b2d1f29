"""
HTTP spot repository (caller-side adapter).

The engine only needs an object with `async fetch_spots(bounds, filters)`. This adapter
implements it against a JSON endpoint:

    GET {base_url}?north=..&south=..&east=..&west=..&search_term=..&prefecture=..&type=..

The endpoint may answer with `{"spots": [...], "total": N}` or with a bare list of spots.
Transport and status failures are wrapped in `RepositoryError`; asyncio cancellation is
left alone so the coordinator can abort superseded loads.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from spotsync.config.settings import Settings
from spotsync.core.errors import RepositoryError
from spotsync.core.http import get_json
from spotsync.domain.models import Bounds, FilterSnapshot, SpotPage
from spotsync.viewport.orchestrator import to_spot_page

logger = logging.getLogger(__name__)


def bounds_params(bounds: Bounds, filters: FilterSnapshot) -> dict[str, Any]:
    params: dict[str, Any] = {
        "north": f"{bounds.north:.6f}",
        "south": f"{bounds.south:.6f}",
        "east": f"{bounds.east:.6f}",
        "west": f"{bounds.west:.6f}",
    }
    params.update(filters.as_params())
    return params


class HttpSpotRepository:
    """Fetches spots for a viewport from a JSON HTTP endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "HttpSpotRepository":
        if not settings.repository.base_url:
            raise ValueError("repository.base_url is not configured (set SPOTSYNC_REPOSITORY_URL)")
        return cls(settings.repository.base_url, timeout_seconds=settings.repository.timeout_seconds, **kwargs)

    async def fetch_spots(self, bounds: Bounds, filters: FilterSnapshot) -> SpotPage:
        params = bounds_params(bounds, filters)
        logger.debug("GET %s params=%s", self._base_url, params)
        try:
            payload = await get_json(
                self._base_url,
                params=params,
                timeout_seconds=self._timeout_seconds,
                transport=self._transport,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise RepositoryError(f"spot repository request failed: {exc}") from exc
        try:
            return to_spot_page(payload)
        except (TypeError, ValueError) as exc:
            raise RepositoryError(f"spot repository returned an invalid payload: {exc}") from exc
