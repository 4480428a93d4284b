"""Structured request logging middleware.

Logs every request with:
- method, path, status_code, duration_ms
- session_state, and when signed in the user_id, role and resolved
  property table (listings or legacy properties)
- request_id (UUID generated per request, added to response as X-Request-ID)
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = structlog.get_logger(__name__)


def _session_context(request: Request) -> dict[str, str | None]:
    """Who is browsing, in which role, against which property table."""
    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        return {"session_state": None}
    gate = dashboard.gate
    context = {"session_state": gate.state.value}
    if gate.session is not None:
        context["user_id"] = gate.session.user.id
        context["role"] = gate.role.value
        context["property_table"] = dashboard.store.resolver.resolved_table
    return context


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that logs every request with session context and timing.

    Generates a unique X-Request-ID for each request and includes it in
    both the log entry and the response headers.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = round((time.monotonic() - start_time) * 1000, 2)
            logger.error(
                "request_error",
                method=request.method,
                path=request.url.path,
                status_code=500,
                duration_ms=duration_ms,
                **_session_context(request),
                request_id=request_id,
            )
            raise

        duration_ms = round((time.monotonic() - start_time) * 1000, 2)
        response.headers["X-Request-ID"] = request_id

        log_method = logger.info if response.status_code < 400 else logger.warning
        if response.status_code >= 500:
            log_method = logger.error

        log_method(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            **_session_context(request),
            request_id=request_id,
        )

        return response
