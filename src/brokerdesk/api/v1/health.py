"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready). Readiness checks
the local preference store and whether the dashboard session has started.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.brokerdesk.config import get_settings
from src.brokerdesk.core.storage import get_redis_pool
from src.brokerdesk.session.gate import SessionState

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No external dependencies are checked."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


async def _check_dependencies(request: Request) -> dict:
    """Check Redis connectivity and dashboard startup. Returns check results dict."""
    checks: dict = {"redis": "ok", "dashboard": "ok"}

    try:
        redis = get_redis_pool()
        pong = await redis.ping()
        if not pong:
            checks["redis"] = "error"
            checks["redis_error"] = "PING did not return PONG"
    except Exception as e:
        checks["redis"] = "error"
        checks["redis_error"] = str(e)

    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        checks["dashboard"] = "missing"
    elif dashboard.state == SessionState.SESSION_LOADING:
        checks["dashboard"] = "starting"

    return checks


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: 200 if Redis answers and the dashboard has started, else 503."""
    checks = await _check_dependencies(request)
    all_healthy = checks.get("redis") == "ok" and checks.get("dashboard") == "ok"

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_healthy else "degraded",
            "checks": checks,
        },
    )
