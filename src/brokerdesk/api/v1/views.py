"""Role-gated navigation: permitted views and the active view."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.brokerdesk.api.deps import require_session
from src.brokerdesk.dashboard import DashboardSession
from src.brokerdesk.sync.schemas import UserRole, ViewName

router = APIRouter(prefix="/api/v1/views", tags=["views"])


class ViewsResponse(BaseModel):
    role: UserRole
    active_view: ViewName
    permitted_views: list[ViewName]
    redirected: bool = False


class SetViewRequest(BaseModel):
    view: ViewName


def _views(dashboard: DashboardSession, redirected: bool = False) -> ViewsResponse:
    return ViewsResponse(
        role=dashboard.gate.role,
        active_view=dashboard.gate.active_view,
        permitted_views=list(dashboard.gate.permitted_views()),
        redirected=redirected,
    )


@router.get("", response_model=ViewsResponse)
async def list_views(dashboard: DashboardSession = Depends(require_session)) -> ViewsResponse:
    return _views(dashboard)


@router.put("/active", response_model=ViewsResponse)
async def set_active_view(
    body: SetViewRequest,
    dashboard: DashboardSession = Depends(require_session),
) -> ViewsResponse:
    """Navigate; a view outside the role's set lands on the role's first view."""
    active = dashboard.gate.set_active_view(body.view)
    return _views(dashboard, redirected=active != body.view)
