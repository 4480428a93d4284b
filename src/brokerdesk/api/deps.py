"""FastAPI dependencies for the dashboard session and its access rules.

Endpoints receive the process-wide DashboardSession from ``app.state``; the
guards below turn the session gate's answers into HTTP status codes:
no dashboard -> 503, no session -> 401, view not permitted for the role -> 403.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status

from src.brokerdesk.dashboard import DashboardSession
from src.brokerdesk.sync.schemas import ViewName


def get_dashboard(request: Request) -> DashboardSession:
    """Retrieve the DashboardSession from app.state, 503 if not available."""
    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard session not initialized",
        )
    return dashboard


async def require_session(
    dashboard: DashboardSession = Depends(get_dashboard),
) -> DashboardSession:
    """Require an authenticated session."""
    if not dashboard.gate.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in",
        )
    return dashboard


def require_view(view: ViewName) -> Callable[..., object]:
    """Dependency factory: require that the current role may open ``view``."""

    async def _check(
        dashboard: DashboardSession = Depends(require_session),
    ) -> DashboardSession:
        if not dashboard.gate.is_permitted(view):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{dashboard.gate.role.value}' may not access '{view.value}'",
            )
        return dashboard

    return _check
