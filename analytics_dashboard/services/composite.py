"""Composite view aggregator — merges several independently cached sub-views."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from analytics_dashboard.core.cache import MISSING
from analytics_dashboard.models.state import SubViewUnavailable, ViewStatus
from analytics_dashboard.models.views import COMPOSITE_VIEWS, CacheKey, TimeRange, View
from analytics_dashboard.services.orchestrator import FetchOrchestrator

logger = logging.getLogger(__name__)


class CompositeAggregator:
    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        composites: dict[View, tuple[View, ...]] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._composites = COMPOSITE_VIEWS if composites is None else composites

    def sub_views(self, view: View) -> tuple[View, ...]:
        try:
            return self._composites[view]
        except KeyError:
            raise ValueError(f"{view} is not a composite view") from None

    def current(self, view: View, time_range: TimeRange) -> dict[View, Any] | None:
        """Merged result as it stands, with failed sub-views marked unavailable.

        None while any sub-view has neither data nor an error to show.
        """
        cache = self._orchestrator.cache
        merged: dict[View, Any] = {}
        for sub in self.sub_views(view):
            key = CacheKey(sub, time_range)
            value = cache.peek(key, MISSING)
            if value is not MISSING:
                merged[sub] = value
                continue
            state = self._orchestrator.view_state(sub)
            if state.status != ViewStatus.ERROR or self._orchestrator.is_in_flight(key):
                return None
            merged[sub] = SubViewUnavailable(view=sub, error=state.error or "unavailable")
        return merged

    def in_flight(self, view: View, time_range: TimeRange) -> bool:
        return any(
            self._orchestrator.is_in_flight(CacheKey(sub, time_range))
            for sub in self.sub_views(view)
        )

    async def resolve(
        self,
        view: View,
        time_range: TimeRange,
        force_refresh: bool = False,
    ) -> dict[View, Any]:
        """Return ``{sub_view: data | SubViewUnavailable}`` for a composite view.

        Sub-views already fresh in cache are reused; the rest are fetched
        concurrently through the orchestrator, which also writes each success
        back under its own key. A failing sub-view becomes a
        :class:`SubViewUnavailable` marker and never fails the composite.
        """
        cache = self._orchestrator.cache
        merged: dict[View, Any] = {}
        missing: list[View] = []
        for sub in self.sub_views(view):
            key = CacheKey(sub, time_range)
            if not force_refresh and cache.is_fresh(key):
                merged[sub] = cache.get(key)
            else:
                # Counted as a miss by the orchestrator
                missing.append(sub)

        if not missing:
            return merged

        results = await asyncio.gather(
            *(
                self._orchestrator.load(CacheKey(sub, time_range), force_refresh=force_refresh)
                for sub in missing
            ),
            return_exceptions=True,
        )
        for sub, outcome in zip(missing, results):
            if isinstance(outcome, Exception):
                logger.warning("Composite %s: %s unavailable (%s)", view, sub, outcome)
                merged[sub] = SubViewUnavailable(view=sub, error=str(outcome))
            else:
                merged[sub] = outcome

        # Keep the declared sub-view order
        return {sub: merged[sub] for sub in self.sub_views(view)}
