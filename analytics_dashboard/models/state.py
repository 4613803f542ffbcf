"""Per-view loading state and the read models handed to the rendering layer."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from analytics_dashboard.models.views import TimeRange, View


class ViewStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass
class ViewState:
    """Loading/error record for one view. Written only by the orchestrator."""
    status: ViewStatus = ViewStatus.IDLE
    error: str | None = None

    @property
    def loading(self) -> bool:
        return self.status == ViewStatus.LOADING


@dataclass(frozen=True)
class SubViewUnavailable:
    """Placeholder for a composite sub-view whose fetch failed."""
    view: View
    error: str
    unavailable: bool = True


class ViewSnapshot(BaseModel):
    view: View
    time_range: TimeRange
    status: ViewStatus
    loading: bool
    data: Any | None = None
    error: str | None = None
    cached: bool = False


class TabStatus(BaseModel):
    view: View
    label: str
    status: ViewStatus
    has_data: bool
    is_active: bool
