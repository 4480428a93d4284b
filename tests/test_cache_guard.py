"""Unit tests for CacheVersionGuard."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from src.brokerdesk.core.storage import MemoryLocalStore
from src.brokerdesk.session.cache_guard import CACHE_VERSION, CACHE_VERSION_KEY, CacheVersionGuard
from src.brokerdesk.session.gate import SessionGate
from src.brokerdesk.session.preferences import ROLE_KEY, SETTINGS_KEY, PreferenceStore
from src.brokerdesk.sync.schemas import AppSettings, UserRole, ViewName
from tests.doubles import FakeAuthClient, InMemoryTableClient, make_session


async def _setup(stored_version: str | None):
    data = {
        SETTINGS_KEY: json.dumps({"darkMode": True, "language": "nl"}),
        ROLE_KEY: json.dumps("maintenance"),
    }
    if stored_version is not None:
        data[CACHE_VERSION_KEY] = stored_version
    storage = MemoryLocalStore(data)
    prefs = PreferenceStore(storage)
    await prefs.load()
    gate = SessionGate(
        FakeAuthClient(session=make_session()), InMemoryTableClient(), prefs
    )
    reload = AsyncMock()
    guard = CacheVersionGuard(storage, prefs, gate, reload=reload)
    return storage, prefs, gate, guard, reload


class TestVersionMismatch:
    @pytest.mark.asyncio
    async def test_old_version_resets_everything_and_reloads_once(self):
        """Persisted "0" vs constant "1": defaults, keys gone, one reload."""
        storage, prefs, gate, guard, reload = await _setup("0")
        assert prefs.settings.dark_mode is True
        gate._active_view = ViewName.TASKS

        invalidated = await guard.check()

        assert invalidated is True
        assert prefs.settings == AppSettings()
        assert prefs.role == UserRole.ADMIN
        assert gate.active_view == ViewName.DASHBOARD
        assert await storage.get(SETTINGS_KEY) is None
        assert await storage.get(ROLE_KEY) is None
        assert await storage.get(CACHE_VERSION_KEY) == CACHE_VERSION
        reload.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_marker_counts_as_mismatch(self):
        storage, prefs, _, guard, reload = await _setup(None)

        assert await guard.check() is True
        assert await storage.get(CACHE_VERSION_KEY) == CACHE_VERSION
        reload.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_runs_at_most_once_per_session_start(self):
        _, _, _, guard, reload = await _setup("0")

        await guard.check()
        await guard.check()

        reload.assert_awaited_once()


class TestVersionMatch:
    @pytest.mark.asyncio
    async def test_matching_version_is_noop(self):
        storage, prefs, _, guard, reload = await _setup(CACHE_VERSION)

        assert await guard.check() is False
        assert prefs.settings.dark_mode is True
        assert prefs.role == UserRole.MAINTENANCE
        assert await storage.get(SETTINGS_KEY) is not None
        reload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_repeated_sessions_stay_idempotent(self):
        _, prefs, _, guard, reload = await _setup("0")
        await guard.check()

        guard.new_session()
        assert await guard.check() is False

        reload.assert_awaited_once()


class TestClear:
    @pytest.mark.asyncio
    async def test_clear_resets_without_reload_or_marker_change(self):
        storage, prefs, _, guard, reload = await _setup(CACHE_VERSION)

        await guard.clear()

        assert prefs.settings == AppSettings()
        assert await storage.get(ROLE_KEY) is None
        assert await storage.get(CACHE_VERSION_KEY) == CACHE_VERSION
        reload.assert_not_awaited()
