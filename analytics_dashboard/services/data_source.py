"""Data source adapter — fetches one dashboard view from the remote analytics API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from analytics_dashboard.core.config import get_settings
from analytics_dashboard.models.views import View

logger = logging.getLogger(__name__)


class ViewFetchError(Exception):
    """A view's dataset could not be loaded. The message is user-facing."""

    def __init__(self, view: str, reason: str) -> None:
        self.view = view
        self.reason = reason
        super().__init__(f"Failed to load {view} data: {reason}")


class DataSource(Protocol):
    async def fetch(self, view: str, params: dict[str, str]) -> Any: ...


@dataclass(frozen=True)
class Endpoint:
    path: str
    uses_period: bool = True


# One remote route per simple view. Platform overview and revenue ignore the
# reporting window on the server side, so no period is sent for them.
VIEW_ENDPOINTS: dict[View, Endpoint] = {
    View.OVERVIEW: Endpoint("v1/analytics/admin/platform", uses_period=False),
    View.USERS: Endpoint("v1/analytics/admin/users"),
    View.SELLERS: Endpoint("v1/analytics/admin/sellers"),
    View.PRODUCTS: Endpoint("v1/analytics/admin/products"),
    View.SALES: Endpoint("v1/analytics/admin/sales"),
    View.PROMOCODES: Endpoint("v1/analytics/admin/promocodes"),
    View.REVENUE: Endpoint("v1/analytics/admin/revenue", uses_period=False),
    View.USER_TRENDS: Endpoint("v1/analytics/admin/user-trends"),
    View.SELLER_TRENDS: Endpoint("v1/analytics/admin/seller-trends"),
    View.FEEDBACK: Endpoint("v1/analytics/admin/feedback"),
    View.TRAFFIC: Endpoint("v1/analytics/admin/traffic"),
}


class HttpAnalyticsSource:
    """DataSource backed by the marketplace analytics REST API.

    The ``httpx.AsyncClient`` is owned by the caller (the application
    lifespan) and shared by every dashboard session.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str | None = None,
        api_token: str | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self._base_url = (base_url or settings.analytics_api_url).rstrip("/")
        self._api_token = settings.analytics_api_token if api_token is None else api_token

    async def fetch(self, view: str, params: dict[str, str]) -> Any:
        """Fetch one view's dataset.

        Args:
            view: Simple (non-composite) view identifier.
            params: ``{"timeRange": ...}``; sent as ``period`` when the endpoint
                is range-aware.

        Raises:
            ViewFetchError: on unknown views, transport errors, non-2xx
                responses, or a body that is not JSON.
        """
        try:
            endpoint = VIEW_ENDPOINTS[View(view)]
        except (KeyError, ValueError) as exc:
            raise ViewFetchError(view, "no data source for this view") from exc

        query: dict[str, str] = {}
        time_range = params.get("timeRange")
        if endpoint.uses_period and time_range:
            query["period"] = time_range

        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"

        url = f"{self._base_url}/{endpoint.path}"
        try:
            response = await self._client.get(url, params=query, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ViewFetchError(
                view, f"server responded {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ViewFetchError(view, str(exc) or type(exc).__name__) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ViewFetchError(view, "invalid JSON in response") from exc

        logger.debug("Fetched %s (%s) from %s", view, time_range, url)
        # The API wraps payloads as {"success": ..., "data": {...}}
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body
