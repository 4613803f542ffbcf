"""Dashboard session endpoints — tab selection, time range, refresh, export."""

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel

from analytics_dashboard.api.deps import Dashboard, Registry
from analytics_dashboard.models.state import TabStatus, ViewSnapshot
from analytics_dashboard.models.views import (
    COMPOSITE_VIEWS,
    TIME_RANGE_LABELS,
    VIEW_LABELS,
    TimeRange,
    View,
)
from analytics_dashboard.services.controller import NoDataToExport
from analytics_dashboard.services.export import export_filename
from analytics_dashboard.services.sessions import DashboardSession, SessionLimitReached

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


# ── Schemas ──────────────────────────────────────────────────

class ViewOption(BaseModel):
    value: View
    label: str
    composite: bool
    sub_views: list[View] = []


class TimeRangeOption(BaseModel):
    value: TimeRange
    label: str


class OptionsResponse(BaseModel):
    views: list[ViewOption]
    time_ranges: list[TimeRangeOption]


class SessionCreate(BaseModel):
    view: View | None = None
    time_range: TimeRange | None = None


class SessionRead(BaseModel):
    id: str
    active_view: View
    active_time_range: TimeRange
    snapshot: ViewSnapshot


class ViewSelect(BaseModel):
    view: View


class TimeRangeSelect(BaseModel):
    time_range: TimeRange


class RefreshRequest(BaseModel):
    view: View | None = None


class CacheStatsRead(BaseModel):
    size: int
    max_entries: int
    ttl_seconds: float
    hits: int
    misses: int
    expired: int
    evictions: int
    keys: list[str]
    pending_prefetches: int


def _session_read(dashboard: DashboardSession) -> SessionRead:
    controller = dashboard.controller
    return SessionRead(
        id=dashboard.id,
        active_view=controller.active_view,
        active_time_range=controller.active_time_range,
        snapshot=controller.snapshot(),
    )


# ── Routes ───────────────────────────────────────────────────

@router.get("/options", response_model=OptionsResponse)
async def get_options() -> OptionsResponse:
    """Selectable views and reporting windows."""
    return OptionsResponse(
        views=[
            ViewOption(
                value=view,
                label=VIEW_LABELS[view],
                composite=view in COMPOSITE_VIEWS,
                sub_views=list(COMPOSITE_VIEWS.get(view, ())),
            )
            for view in View
        ],
        time_ranges=[
            TimeRangeOption(value=tr, label=TIME_RANGE_LABELS[tr]) for tr in TimeRange
        ],
    )


@router.post("/sessions", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
async def create_session(registry: Registry, body: SessionCreate | None = None) -> SessionRead:
    """Open a dashboard session and load its initial view."""
    body = body or SessionCreate()
    try:
        dashboard = await registry.create(view=body.view, time_range=body.time_range)
    except SessionLimitReached as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    await dashboard.controller.set_active_view(dashboard.controller.active_view)
    return _session_read(dashboard)


@router.get("/sessions/{session_id}", response_model=SessionRead)
async def get_session(dashboard: Dashboard) -> SessionRead:
    return _session_read(dashboard)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: str, registry: Registry) -> None:
    """Tear down a session: cancels pending prefetches and drops its cache."""
    if not await registry.close(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Dashboard session not found",
        )


@router.put("/sessions/{session_id}/view", response_model=ViewSnapshot)
async def select_view(body: ViewSelect, dashboard: Dashboard) -> ViewSnapshot:
    return await dashboard.controller.set_active_view(body.view)


@router.put("/sessions/{session_id}/time-range", response_model=ViewSnapshot)
async def select_time_range(body: TimeRangeSelect, dashboard: Dashboard) -> ViewSnapshot:
    """Change the reporting window. Invalidates every cached view of the session."""
    return await dashboard.controller.set_time_range(body.time_range)


@router.post("/sessions/{session_id}/refresh", response_model=ViewSnapshot)
async def refresh_view(dashboard: Dashboard, body: RefreshRequest | None = None) -> ViewSnapshot:
    """Re-fetch a view (default: the active one), bypassing the cache."""
    view = body.view if body else None
    return await dashboard.controller.refresh(view)


@router.get("/sessions/{session_id}/tabs", response_model=list[TabStatus])
async def get_tabs(dashboard: Dashboard) -> list[TabStatus]:
    return dashboard.controller.tab_statuses()


@router.get("/sessions/{session_id}/cache", response_model=CacheStatsRead)
async def get_cache_stats(dashboard: Dashboard) -> CacheStatsRead:
    keys = [str(k) for k in dashboard.cache.keys()]
    return CacheStatsRead(
        **dashboard.cache.stats(),
        keys=keys,
        pending_prefetches=dashboard.prefetcher.pending,
    )


@router.get("/sessions/{session_id}/export")
async def export_view(dashboard: Dashboard) -> Response:
    """Download the active view's data as ``analytics-<view>-<range>-<date>.json``."""
    try:
        snapshot = dashboard.controller.export()
    except NoDataToExport as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    return Response(
        content=snapshot.to_json(),
        media_type="application/json; charset=utf-8",
        headers={
            "Content-Disposition": f"attachment; filename={export_filename(snapshot)}"
        },
    )
