"""
Data fetch orchestrator.

Binds one viewport load to the external repository call and to the UI sink:
- raises the loading flag before the call and lowers it in `finally`,
- drops cancelled/superseded results silently (cancellation is not a failure),
- turns every other failure into a single `sink.on_error` notification,
- logs (and otherwise ignores) failures of the optional `on_load_success` hook.

The orchestrator never raises for fetch-level problems; the coordinator relies on
that so `on_bounds_changed` stays safe under any network condition.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal, Mapping, Protocol, Sequence, Union

from spotsync.core.errors import FetchCancelledError
from spotsync.domain.models import Bounds, FilterSnapshot, Spot, SpotPage
from spotsync.viewport.tokens import CancellationToken

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load camping spots"

RepositoryResult = Union[SpotPage, Mapping[str, Any], Sequence[Any]]


class SpotRepository(Protocol):
    async def fetch_spots(self, bounds: Bounds, filters: FilterSnapshot) -> RepositoryResult: ...


class SpotSink(Protocol):
    def on_loading_changed(self, loading: bool) -> None: ...

    def on_spots_loaded(self, spots: list[Spot], total: int) -> None: ...

    def on_error(self, message: str) -> None: ...


LoadSuccessHook = Callable[[list[Spot], Bounds, FilterSnapshot], Awaitable[None]]


@dataclass(frozen=True)
class LoadResult:
    status: Literal["loaded", "cancelled", "failed"]
    spots: list[Spot] = field(default_factory=list)
    total: int = 0
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.status == "loaded"


def to_spot_page(result: RepositoryResult) -> SpotPage:
    """Normalize a repository result: a SpotPage, a `{spots, total}` mapping, or a bare spot list."""
    if isinstance(result, SpotPage):
        return result
    if isinstance(result, Mapping):
        return SpotPage.model_validate(result)
    if isinstance(result, (str, bytes)):
        raise TypeError("repository returned a string; expected spots")
    spots = [s if isinstance(s, Spot) else Spot.model_validate(s) for s in result]
    return SpotPage(spots=spots, total=len(spots))


class DataFetchOrchestrator:
    def __init__(
        self,
        repository: SpotRepository,
        sink: SpotSink,
        *,
        on_load_success: LoadSuccessHook | None = None,
        error_message: str = LOAD_ERROR_MESSAGE,
    ):
        self._repository = repository
        self._sink = sink
        self._on_load_success = on_load_success
        self._error_message = error_message

    @property
    def sink(self) -> SpotSink:
        return self._sink

    async def load(self, bounds: Bounds, filters: FilterSnapshot, token: CancellationToken) -> LoadResult:
        """Run one repository load for `token`; never raises for fetch-level failures."""
        self._sink.on_loading_changed(True)
        try:
            raw = await self._repository.fetch_spots(bounds, filters)
            if token.cancelled:
                logger.debug("Discarding late result for generation %d", token.generation)
                return LoadResult(status="cancelled")

            page = to_spot_page(raw)
            self._sink.on_spots_loaded(page.spots, page.total)
            if self._on_load_success is not None:
                try:
                    await self._on_load_success(page.spots, bounds, filters)
                except Exception:
                    # Spots are already applied; hook failures are logged only.
                    logger.exception("on_load_success hook failed for generation %d", token.generation)
            return LoadResult(status="loaded", spots=page.spots, total=page.total)
        except asyncio.CancelledError:
            if not token.cancelled:
                # Not ours (e.g. loop shutdown); let it propagate.
                raise
            logger.debug("Load generation %d cancelled (%s)", token.generation, token.reason)
            return LoadResult(status="cancelled")
        except FetchCancelledError:
            logger.debug("Repository aborted load generation %d", token.generation)
            return LoadResult(status="cancelled")
        except Exception as exc:
            if token.cancelled:
                return LoadResult(status="cancelled")
            logger.exception("Error loading spots for %s", bounds.model_dump())
            self._sink.on_error(self._error_message)
            return LoadResult(status="failed", error=exc)
        finally:
            if not token.superseded:
                self._sink.on_loading_changed(False)
