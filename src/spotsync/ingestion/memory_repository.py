from __future__ import annotations

import asyncio
from typing import Sequence

from spotsync.domain.models import Bounds, FilterSnapshot, Spot, SpotPage


def _in_bounds(spot: Spot, bounds: Bounds) -> bool:
    c = spot.coordinates
    return bounds.south <= c.latitude <= bounds.north and bounds.west <= c.longitude <= bounds.east


def _matches(spot: Spot, filters: FilterSnapshot) -> bool:
    if filters.prefecture and spot.prefecture != filters.prefecture:
        return False
    if filters.type and spot.type != filters.type:
        return False
    if filters.search_term and filters.search_term.lower() not in spot.name.lower():
        return False
    return True


class InMemorySpotRepository:
    """
    Serves spots from a preloaded catalog by scanning for the viewport rectangle.

    Used by the CLI replay command and tests; `delay_seconds` simulates network latency.
    """

    def __init__(self, spots: Sequence[Spot], *, delay_seconds: float = 0.0, limit: int | None = None):
        self._spots = list(spots)
        self._delay_seconds = float(delay_seconds)
        self._limit = limit
        self.calls: list[tuple[Bounds, FilterSnapshot]] = []

    async def fetch_spots(self, bounds: Bounds, filters: FilterSnapshot) -> SpotPage:
        self.calls.append((bounds, filters))
        if self._delay_seconds > 0:
            await asyncio.sleep(self._delay_seconds)
        matched = [s for s in self._spots if _in_bounds(s, bounds) and _matches(s, filters)]
        shown = matched[: self._limit] if self._limit is not None else matched
        return SpotPage(spots=shown, total=len(matched))
