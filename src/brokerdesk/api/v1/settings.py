"""Settings endpoints: read and patch the locally persisted preferences."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.brokerdesk.api.deps import require_view
from src.brokerdesk.dashboard import DashboardSession
from src.brokerdesk.sync.schemas import AppSettings, CamelModel, ViewName

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


class ProfilePatch(CamelModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class SettingsPatch(CamelModel):
    """Partial settings update. The profile role label follows the role and is not patchable."""

    profile: ProfilePatch | None = None
    notify_email: bool | None = None
    notify_push: bool | None = None
    notify_sms: bool | None = None
    dark_mode: bool | None = None
    language: str | None = None
    timezone: str | None = None


@router.get("", response_model=AppSettings)
async def get_app_settings(
    dashboard: DashboardSession = Depends(require_view(ViewName.SETTINGS)),
) -> AppSettings:
    return dashboard.settings


@router.patch("", response_model=AppSettings)
async def patch_app_settings(
    body: SettingsPatch,
    dashboard: DashboardSession = Depends(require_view(ViewName.SETTINGS)),
) -> AppSettings:
    """Merge the patch into the settings and persist them."""
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    return await dashboard.update_settings(**changes)
