"""Session endpoints: current state, sign-in, sign-out."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from src.brokerdesk.api.deps import get_dashboard
from src.brokerdesk.dashboard import DashboardSession
from src.brokerdesk.sync.schemas import UserRole, ViewName

router = APIRouter(prefix="/api/v1/session", tags=["session"])


class SessionResponse(BaseModel):
    state: str
    user_id: str | None = None
    email: str | None = None
    role: UserRole
    active_view: ViewName
    permitted_views: list[ViewName]


class SignInRequest(BaseModel):
    email: str
    password: str


def session_response(dashboard: DashboardSession) -> SessionResponse:
    gate = dashboard.gate
    user = gate.session.user if gate.session else None
    return SessionResponse(
        state=gate.state.value,
        user_id=user.id if user else None,
        email=user.email if user else None,
        role=gate.role,
        active_view=gate.active_view,
        permitted_views=list(gate.permitted_views()),
    )


@router.get("", response_model=SessionResponse)
async def get_session(
    dashboard: DashboardSession = Depends(get_dashboard),
) -> SessionResponse:
    """Current session state, role and view whitelist."""
    return session_response(dashboard)


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(
    body: SignInRequest,
    dashboard: DashboardSession = Depends(get_dashboard),
) -> SessionResponse:
    """Sign in with email and password, then load the dashboard data."""
    result = await dashboard.sign_in(body.email, body.password)
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.error.message if result.error else "Sign-in failed",
        )
    return session_response(dashboard)


@router.post("/sign-out", status_code=204)
async def sign_out(dashboard: DashboardSession = Depends(get_dashboard)) -> None:
    """Sign out and drop all loaded collections."""
    await dashboard.sign_out()
