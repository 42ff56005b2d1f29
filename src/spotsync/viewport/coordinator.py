"""
Viewport change coordinator.

This is the state machine between map events and repository loads. It owns:
- the debounce timer (`loop.call_later` handle, cancelled on every new event),
- the active cancellation token and its asyncio task (at most one load is honoured),
- `last_loaded_bounds`, the skip baseline while nothing is in flight (written only on accepted loads).

Decision per (possibly debounced) event, against a baseline that is the load still in
flight if there is one, else the last loaded view:
1. Zoom-in skip: same filters and the new view lies inside the baseline view.
2. Threshold skip: same filters and edges moved <= `pan_threshold_ratio` of the span.
3. Otherwise issue a load that supersedes any load still in flight.

All methods must be called from the event loop thread; none of them raise for
network conditions.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from spotsync.config.overrides import apply_settings_overrides
from spotsync.config.settings import Settings, get_settings
from spotsync.core.errors import GeolocationError
from spotsync.domain.models import Bounds, FilterSnapshot
from spotsync.viewport.bounds import exceeds_span, has_moved_significantly, is_contained
from spotsync.viewport.device import is_touch_user_agent
from spotsync.viewport.geolocation import GeolocationProvider, geolocation_error_message, initial_bounds
from spotsync.viewport.orchestrator import DataFetchOrchestrator
from spotsync.viewport.tokens import CancellationToken, CancelReason

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingRequest:
    bounds: Bounds
    filters: FilterSnapshot
    token: CancellationToken


def _log_task_failure(task: asyncio.Task[None]) -> None:
    # Sink callbacks may raise from the orchestrator's error path; nothing else awaits the task.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Viewport load task failed", exc_info=exc)


class ViewportChangeCoordinator:
    def __init__(
        self,
        orchestrator: DataFetchOrchestrator,
        *,
        settings: Settings | None = None,
        touch_device: bool | None = None,
        user_agent: str | None = None,
        settings_overrides: Mapping[str, Any] | None = None,
    ):
        self._orchestrator = orchestrator
        self._settings = apply_settings_overrides(settings or get_settings(), settings_overrides)
        viewport = self._settings.viewport
        if touch_device is None:
            touch_device = is_touch_user_agent(user_agent, pattern=viewport.touch_user_agent_pattern)
        self._touch_device = bool(touch_device)
        debounce_ms = viewport.debounce.touch_ms if self._touch_device else viewport.debounce.desktop_ms
        self._debounce_seconds = debounce_ms / 1000.0

        self._last_loaded_bounds: Bounds | None = None
        self._last_loaded_filters: FilterSnapshot | None = None
        self._latest_filters = FilterSnapshot()
        self._initial_load_done = False

        self._timer: asyncio.TimerHandle | None = None
        self._pending: PendingRequest | None = None
        self._task: asyncio.Task[None] | None = None
        self._generation = 0
        self._disposed = False

    @property
    def last_loaded_bounds(self) -> Bounds | None:
        return self._last_loaded_bounds

    @property
    def initial_load_done(self) -> bool:
        return self._initial_load_done

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_seconds

    @property
    def touch_device(self) -> bool:
        return self._touch_device

    @property
    def pending_request(self) -> PendingRequest | None:
        return self._pending

    @property
    def generation(self) -> int:
        """Number of loads issued so far."""
        return self._generation

    # Public operations

    def on_bounds_changed(self, bounds: Bounds, filters: FilterSnapshot | None = None) -> None:
        """Handle a viewport change; loads immediately until the first load lands, then debounced."""
        if self._disposed:
            return
        if filters is None:
            filters = self._latest_filters
        self._latest_filters = filters
        self._cancel_timer()

        if not self._initial_load_done and self._task is None:
            self._decide(bounds, filters)
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce_seconds, self._on_debounce_elapsed, bounds, filters)

    def force_reload(self, bounds: Bounds, filters: FilterSnapshot | None = None) -> None:
        """Load `bounds` now, bypassing the zoom-in and threshold skips (used on filter changes)."""
        if self._disposed:
            return
        if filters is None:
            filters = self._latest_filters
        self._latest_filters = filters
        self._cancel_timer()
        self._last_loaded_bounds = None
        if self._apply_span_limit(bounds):
            return
        self._issue_fetch(bounds, filters)

    async def seed_from_geolocation(
        self, provider: GeolocationProvider, *, zoom: float | None = None
    ) -> Bounds | None:
        """Centre the initial viewport on the provider's position; report failures to the sink."""
        if self._disposed:
            return None
        try:
            position = await provider.current_position()
        except GeolocationError as exc:
            logger.info("Geolocation failed: %s", exc.code)
            self._orchestrator.sink.on_error(geolocation_error_message(exc.code))
            return None
        except Exception:
            logger.exception("Geolocation provider error")
            self._orchestrator.sink.on_error(geolocation_error_message("unknown"))
            return None

        bounds = initial_bounds(position, self._settings.geolocation, zoom=zoom)
        self.on_bounds_changed(bounds, self._latest_filters)
        return bounds

    async def wait_idle(self) -> None:
        """Wait until no debounce timer is pending and no load is in flight."""
        loop = asyncio.get_running_loop()
        while True:
            task = self._task
            if task is not None and not task.done():
                await asyncio.wait({task})
                continue
            timer = self._timer
            if timer is not None and not timer.cancelled():
                await asyncio.sleep(max(0.0, timer.when() - loop.time()))
                continue
            return

    def dispose(self) -> None:
        """Cancel the debounce timer and any in-flight load; later events are ignored."""
        self._disposed = True
        self._cancel_timer()
        self._cancel_active("disposed")

    # Internals

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel_active(self, reason: CancelReason) -> None:
        if self._pending is not None:
            self._pending.token.cancel(reason)
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._pending = None
        self._task = None

    def _on_debounce_elapsed(self, bounds: Bounds, filters: FilterSnapshot) -> None:
        self._timer = None
        if self._disposed:
            return
        self._decide(bounds, filters)

    def _decide(self, bounds: Bounds, filters: FilterSnapshot) -> None:
        if self._apply_span_limit(bounds):
            return

        viewport = self._settings.viewport
        baseline_bounds, baseline_filters = self._last_loaded_bounds, self._last_loaded_filters
        if self._pending is not None:
            # The in-flight load is about to replace the last landed one on screen.
            baseline_bounds, baseline_filters = self._pending.bounds, self._pending.filters

        if filters == baseline_filters:
            if is_contained(baseline_bounds, bounds, epsilon_deg=viewport.zoom_in_epsilon_deg):
                logger.debug("Skipping load: %s is inside the baseline bounds", bounds.model_dump())
                return
            if not has_moved_significantly(baseline_bounds, bounds, threshold_ratio=viewport.pan_threshold_ratio):
                logger.debug("Skipping load: viewport moved less than the pan threshold")
                return

        self._issue_fetch(bounds, filters)

    def _apply_span_limit(self, bounds: Bounds) -> bool:
        """Clear spots instead of loading when the view is wider than the public limit."""
        limit = self._settings.viewport.span_limit
        if not limit.enabled:
            return False

        sink = self._orchestrator.sink
        notify = getattr(sink, "on_bounds_too_wide", None)
        if not exceeds_span(bounds, max_lng_span=limit.max_lng_span, max_lat_span=limit.max_lat_span):
            if notify is not None:
                notify(False)
            return False

        logger.info("Viewport too wide (%.2f x %.2f deg); clearing spots", bounds.lng_span, bounds.lat_span)
        self._cancel_active("too_wide")
        # Spots are cleared, so the next in-limit view must load regardless of skips.
        self._last_loaded_bounds = None
        self._initial_load_done = True
        sink.on_spots_loaded([], 0)
        sink.on_loading_changed(False)
        if notify is not None:
            notify(True)
        return True

    def _issue_fetch(self, bounds: Bounds, filters: FilterSnapshot) -> None:
        self._cancel_active("superseded")
        self._generation += 1
        token = CancellationToken(self._generation)
        self._pending = PendingRequest(bounds=bounds, filters=filters, token=token)
        logger.info("Loading spots (generation %d) for %s", token.generation, bounds.model_dump())
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run_fetch(bounds, filters, token))
        self._task.add_done_callback(_log_task_failure)

    async def _run_fetch(self, bounds: Bounds, filters: FilterSnapshot, token: CancellationToken) -> None:
        try:
            result = await self._orchestrator.load(bounds, filters, token)
            if token.cancelled or self._pending is None or self._pending.token is not token:
                return
            if result.ok:
                self._last_loaded_bounds = bounds
                self._last_loaded_filters = filters
                self._initial_load_done = True
        finally:
            if self._pending is not None and self._pending.token is token:
                self._pending = None
                self._task = None
