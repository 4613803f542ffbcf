"""FastAPI dependencies for dashboard session resolution."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from analytics_dashboard.services.sessions import DashboardSession, SessionRegistry


def get_registry(request: Request) -> SessionRegistry:
    """The registry created by the application lifespan."""
    return request.app.state.sessions


def get_dashboard_session(
    session_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> DashboardSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Dashboard session not found",
        )
    return session


# Typed shorthand for use in route signatures
Registry = Annotated[SessionRegistry, Depends(get_registry)]
Dashboard = Annotated[DashboardSession, Depends(get_dashboard_session)]
