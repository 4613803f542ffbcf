"""Dashboard controller — the active (view, time range) selection for one session.

Rendering reads go through :meth:`DashboardController.snapshot`, which is
derived from the cache store and the orchestrator's view state every time.
There is no second copy of loaded data to fall out of sync.
"""

from __future__ import annotations

import logging
from typing import Any

from analytics_dashboard.models.state import TabStatus, ViewSnapshot, ViewStatus
from analytics_dashboard.models.views import (
    VIEW_LABELS,
    CacheKey,
    TimeRange,
    View,
    is_composite,
)
from analytics_dashboard.services.composite import CompositeAggregator
from analytics_dashboard.services.export import ExportSnapshot, build_export
from analytics_dashboard.services.orchestrator import FetchOrchestrator
from analytics_dashboard.services.prefetch import PrefetchScheduler

logger = logging.getLogger(__name__)


class NoDataToExport(Exception):
    """The active view has no loaded data for the active time range."""


class DashboardController:
    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        aggregator: CompositeAggregator,
        prefetcher: PrefetchScheduler,
        view: View = View.OVERVIEW,
        time_range: TimeRange = TimeRange.THIRTY_DAYS,
    ) -> None:
        self._orchestrator = orchestrator
        self._aggregator = aggregator
        self._prefetcher = prefetcher
        self.active_view = view
        self.active_time_range = time_range

    @property
    def active_key(self) -> CacheKey:
        return CacheKey(self.active_view, self.active_time_range)

    # ── Selection ────────────────────────────────────────────

    async def set_active_view(self, view: View) -> ViewSnapshot:
        """Switch tabs, loading the view unless it is fresh in cache.

        A fetch already in flight for the view is joined, not repeated.
        Prefetching starts once the view has settled, and only if the user
        has not moved on to another tab in the meantime.
        """
        self.active_view = view
        await self._resolve(view)
        if self.active_view == view:
            self._prefetcher.schedule(view, self.active_time_range)
        return self.snapshot(view)

    async def set_time_range(self, time_range: TimeRange) -> ViewSnapshot:
        """Change the reporting window.

        Every cached dataset is range-specific, so the whole cache is dropped
        before the active view is loaded again for the new range.
        """
        if time_range != self.active_time_range:
            logger.info(
                "Time range %s -> %s, invalidating cache", self.active_time_range, time_range
            )
        self.active_time_range = time_range
        self._orchestrator.invalidate_all()
        self._prefetcher.reset()
        await self._resolve(self.active_view)
        if self.active_time_range == time_range:
            self._prefetcher.schedule(self.active_view, time_range)
        return self.snapshot()

    async def refresh(self, view: View | None = None) -> ViewSnapshot:
        """Drop the cached dataset for ``view`` (default: active) and re-fetch it."""
        view = view or self.active_view
        if is_composite(view):
            for sub in self._aggregator.sub_views(view):
                self._orchestrator.invalidate(CacheKey(sub, self.active_time_range))
            await self._aggregator.resolve(view, self.active_time_range, force_refresh=True)
        else:
            key = CacheKey(view, self.active_time_range)
            self._orchestrator.invalidate(key)
            await self._orchestrator.resolve(key, force_refresh=True)
        return self.snapshot(view)

    async def _resolve(self, view: View) -> None:
        if is_composite(view):
            await self._aggregator.resolve(view, self.active_time_range)
        else:
            await self._orchestrator.resolve(CacheKey(view, self.active_time_range))

    # ── Reads ────────────────────────────────────────────────

    def snapshot(self, view: View | None = None) -> ViewSnapshot:
        view = view or self.active_view
        data = self._current_data(view)
        status, error = self._status(view, has_data=data is not None)
        return ViewSnapshot(
            view=view,
            time_range=self.active_time_range,
            status=status,
            loading=status == ViewStatus.LOADING,
            data=data,
            error=error,
            cached=data is not None,
        )

    def tab_statuses(self) -> list[TabStatus]:
        """Status of every tab under the active time range, for the tab bar."""
        tabs = []
        for view in View:
            snap = self.snapshot(view)
            tabs.append(TabStatus(
                view=view,
                label=VIEW_LABELS[view],
                status=snap.status,
                has_data=snap.cached,
                is_active=view == self.active_view,
            ))
        return tabs

    def export(self) -> ExportSnapshot:
        data = self._current_data(self.active_view)
        if data is None:
            raise NoDataToExport(
                f"No data loaded for {self.active_view} ({self.active_time_range})"
            )
        return build_export(self.active_view, self.active_time_range, data)

    def _current_data(self, view: View) -> Any | None:
        if is_composite(view):
            return self._aggregator.current(view, self.active_time_range)
        key = CacheKey(view, self.active_time_range)
        return self._orchestrator.cache.peek(key)

    def _is_loading(self, view: View) -> bool:
        if is_composite(view):
            return self._aggregator.in_flight(view, self.active_time_range)
        return self._orchestrator.is_in_flight(CacheKey(view, self.active_time_range))

    def _status(self, view: View, has_data: bool) -> tuple[ViewStatus, str | None]:
        if self._is_loading(view):
            return ViewStatus.LOADING, None
        if has_data:
            return ViewStatus.LOADED, None
        if is_composite(view):
            return ViewStatus.IDLE, None
        state = self._orchestrator.view_state(view)
        if state.status == ViewStatus.ERROR:
            return ViewStatus.ERROR, state.error
        # Loaded earlier but expired or evicted since: back to idle until re-fetched
        return ViewStatus.IDLE, None
