"""Re-export the view catalogue and state models."""

from analytics_dashboard.models.state import (
    SubViewUnavailable,
    TabStatus,
    ViewSnapshot,
    ViewState,
    ViewStatus,
)
from analytics_dashboard.models.views import (
    COMPOSITE_VIEWS,
    PREFETCH_CANDIDATES,
    TIME_RANGE_LABELS,
    VIEW_LABELS,
    CacheKey,
    TimeRange,
    View,
    is_composite,
)

__all__ = [
    "COMPOSITE_VIEWS",
    "PREFETCH_CANDIDATES",
    "TIME_RANGE_LABELS",
    "VIEW_LABELS",
    "CacheKey",
    "SubViewUnavailable",
    "TabStatus",
    "TimeRange",
    "View",
    "ViewSnapshot",
    "ViewState",
    "ViewStatus",
    "is_composite",
]
