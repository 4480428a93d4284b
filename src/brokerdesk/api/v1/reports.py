"""Report metrics derived from the loaded collections."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.brokerdesk.api.deps import require_view
from src.brokerdesk.dashboard import DashboardSession
from src.brokerdesk.sync.reports import ReportMetrics, build_report
from src.brokerdesk.sync.schemas import ViewName

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("", response_model=ReportMetrics)
async def get_report(
    dashboard: DashboardSession = Depends(require_view(ViewName.REPORTS)),
) -> ReportMetrics:
    return build_report(dashboard.store)
