"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from analytics_dashboard.api.v1 import v1_router
from analytics_dashboard.core.config import get_settings
from analytics_dashboard.services.data_source import HttpAnalyticsSource
from analytics_dashboard.services.sessions import SessionRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: one HTTP client shared by every dashboard session
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    client = httpx.AsyncClient(timeout=settings.request_timeout_seconds)
    app.state.sessions = SessionRegistry(HttpAnalyticsSource(client), settings)
    logger.info("Analytics source: %s", settings.analytics_api_url)
    yield
    # Shutdown: stop background prefetches, then the client they use
    await app.state.sessions.close_all()
    await client.aclose()


app = FastAPI(
    title="Analytics Dashboard",
    version="0.1.0",
    description="Cached, deduplicated data orchestration for the admin analytics dashboard",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────
_settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── API routes ───────────────────────────────────────────────
app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}
