"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.brokerdesk.api.v1 import cache, health, records, reports, session, settings, views

router = APIRouter()

router.include_router(health.router)
router.include_router(session.router)
router.include_router(views.router)
router.include_router(records.router)
router.include_router(settings.router)
router.include_router(cache.router)
router.include_router(reports.router)
