"""Dashboard view catalogue — views, time ranges, composites and prefetch order."""

from dataclasses import dataclass
from enum import StrEnum


class View(StrEnum):
    OVERVIEW = "overview"
    USERS = "users"
    SELLERS = "sellers"
    PRODUCTS = "products"
    SALES = "sales"
    PROMOCODES = "promocodes"
    REVENUE = "revenue"
    USER_TRENDS = "user-trends"
    SELLER_TRENDS = "seller-trends"
    FEEDBACK = "feedback"
    TRAFFIC = "traffic"
    # Composite
    SUMMARY = "summary"


class TimeRange(StrEnum):
    TODAY = "today"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    NINETY_DAYS = "90d"
    ONE_YEAR = "1y"


@dataclass(frozen=True)
class CacheKey:
    """Identifies one cached dataset: a view under a time range."""
    view: View
    time_range: TimeRange

    def __str__(self) -> str:
        return f"{self.view}_{self.time_range}"


VIEW_LABELS: dict[View, str] = {
    View.OVERVIEW: "Overview",
    View.USERS: "Users",
    View.SELLERS: "Sellers",
    View.PRODUCTS: "Products",
    View.SALES: "Sales",
    View.PROMOCODES: "Promocodes",
    View.REVENUE: "Revenue",
    View.USER_TRENDS: "User Trends",
    View.SELLER_TRENDS: "Seller Trends",
    View.FEEDBACK: "Feedback",
    View.TRAFFIC: "Traffic",
    View.SUMMARY: "Summary",
}

TIME_RANGE_LABELS: dict[TimeRange, str] = {
    TimeRange.TODAY: "Today",
    TimeRange.SEVEN_DAYS: "Last 7 days",
    TimeRange.THIRTY_DAYS: "Last 30 days",
    TimeRange.NINETY_DAYS: "Last 90 days",
    TimeRange.ONE_YEAR: "Last year",
}

# Views whose data is merged from several independently cached sub-views.
COMPOSITE_VIEWS: dict[View, tuple[View, ...]] = {
    View.SUMMARY: (View.SALES, View.REVENUE, View.USERS, View.SELLERS),
}

# "After viewing X, these are likely next" — walked in order by the prefetcher.
PREFETCH_CANDIDATES: dict[View, tuple[View, ...]] = {
    View.OVERVIEW: (View.SALES, View.USERS, View.REVENUE),
    View.USERS: (View.USER_TRENDS, View.SELLERS, View.OVERVIEW),
    View.SELLERS: (View.SELLER_TRENDS, View.PRODUCTS, View.USERS),
    View.PRODUCTS: (View.SALES, View.SELLERS),
    View.SALES: (View.REVENUE, View.PRODUCTS, View.PROMOCODES),
    View.PROMOCODES: (View.SALES, View.REVENUE),
    View.REVENUE: (View.SALES, View.OVERVIEW),
    View.USER_TRENDS: (View.USERS, View.TRAFFIC),
    View.SELLER_TRENDS: (View.SELLERS, View.PRODUCTS),
    View.FEEDBACK: (View.USERS, View.PRODUCTS),
    View.TRAFFIC: (View.USER_TRENDS, View.OVERVIEW),
    View.SUMMARY: (View.OVERVIEW, View.PRODUCTS),
}


def is_composite(view: View) -> bool:
    return view in COMPOSITE_VIEWS
