"""FastAPI application factory.

Creates the app with logging middleware, CORS, a 502 mapping for failed
remote writes, lifespan events wiring the dashboard session, and the v1 API
router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.brokerdesk.api.middleware.logging import LoggingMiddleware
from src.brokerdesk.api.v1.router import router as v1_router
from src.brokerdesk.config import get_settings
from src.brokerdesk.core.logging import configure_structlog
from src.brokerdesk.core.storage import RedisLocalStore, close_redis, get_redis_pool
from src.brokerdesk.dashboard import DashboardSession
from src.brokerdesk.sync.auth import SupabaseAuthClient
from src.brokerdesk.sync.errors import SyncOperationError
from src.brokerdesk.sync.supabase import SupabaseTableClient

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: wire remote clients and start the dashboard session."""
    settings = get_settings()
    configure_structlog()

    auth = SupabaseAuthClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        timeout=settings.REMOTE_TIMEOUT,
    )
    client = SupabaseTableClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        token_provider=lambda: auth.access_token,
        timeout=settings.REMOTE_TIMEOUT,
    )
    storage = RedisLocalStore(get_redis_pool(), settings.LOCAL_STATE_PREFIX)

    dashboard = DashboardSession(auth, client, storage)
    await dashboard.start()
    app.state.dashboard = dashboard
    logger.info("app.started", environment=settings.ENVIRONMENT.value)

    yield

    await dashboard.stop()
    await close_redis()
    logger.info("app.stopped")


async def sync_error_handler(request: Request, exc: SyncOperationError) -> JSONResponse:
    """Failed remote write: the collection is unchanged, report 502."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "detail": str(exc),
            "operation": exc.operation,
            "table": exc.table,
            "kind": exc.error.kind.value,
        },
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Brokerdesk API",
        version="0.1.0",
        description="Real-estate brokerage dashboard backend",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(SyncOperationError, sync_error_handler)
    app.include_router(v1_router)

    return app


# Module-level app for uvicorn
app = create_app()
