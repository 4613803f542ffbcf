"""V1 API router aggregation."""

from fastapi import APIRouter

from analytics_dashboard.api.v1.dashboard import router as dashboard_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(dashboard_router)
