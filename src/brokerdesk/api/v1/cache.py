"""Cache endpoints: user-triggered data reload and local cache clear."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.brokerdesk.api.deps import require_session
from src.brokerdesk.dashboard import DashboardSession
from src.brokerdesk.sync.store import LoadReport

router = APIRouter(prefix="/api/v1/cache", tags=["cache"])


class LoadResponse(BaseModel):
    ok: bool
    property_table: str | None = None
    failed: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)


def load_response(report: LoadReport | None) -> LoadResponse:
    if report is None:
        return LoadResponse(ok=True)
    return LoadResponse(
        ok=report.ok,
        property_table=report.property_table,
        failed=report.failed,
        errors={name: error.message for name, error in report.errors.items() if error},
    )


@router.post("/reload", response_model=LoadResponse)
async def reload_data(dashboard: DashboardSession = Depends(require_session)) -> LoadResponse:
    """Reload every collection; the property table is resolved again."""
    return load_response(await dashboard.reload())


@router.post("/clear", response_model=LoadResponse)
async def clear_cache(dashboard: DashboardSession = Depends(require_session)) -> LoadResponse:
    """Reset settings, role and active view to defaults, then reload."""
    return load_response(await dashboard.clear_cache())
