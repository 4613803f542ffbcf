"""Application settings loaded from environment / .env file."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from analytics_dashboard.models.views import TimeRange, View


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Remote analytics API ──────────────────────────────
    analytics_api_url: str = "http://api:8080"
    analytics_api_token: str = ""  # Bearer token for the admin analytics routes
    request_timeout_seconds: float = 10.0

    # ── Cache ─────────────────────────────────────────────
    cache_ttl_seconds: float = 300.0
    cache_max_entries: int = 50

    # ── Prefetch ──────────────────────────────────────────
    prefetch_count: int = 2
    prefetch_delay_seconds: float = 1.0

    # ── Sessions ──────────────────────────────────────────
    default_view: View = View.OVERVIEW
    default_time_range: TimeRange = TimeRange.THIRTY_DAYS
    max_sessions: int = 100
    session_idle_seconds: float = 1800.0  # idle sessions are closed after this

    # ── App ───────────────────────────────────────────────
    allowed_origins: str = "*"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
