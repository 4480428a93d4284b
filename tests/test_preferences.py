"""Unit tests for PreferenceStore over a MemoryLocalStore."""

from __future__ import annotations

import json

import pytest

from src.brokerdesk.core.storage import MemoryLocalStore
from src.brokerdesk.session.preferences import ROLE_KEY, SETTINGS_KEY, PreferenceStore
from src.brokerdesk.sync.schemas import AppSettings, UserRole


class TestLoad:
    @pytest.mark.asyncio
    async def test_defaults_when_nothing_persisted(self):
        prefs = PreferenceStore(MemoryLocalStore())
        await prefs.load()

        assert prefs.settings == AppSettings()
        assert prefs.role == UserRole.ADMIN

    @pytest.mark.asyncio
    async def test_reads_persisted_camel_case_settings(self):
        stored = {"profile": {"name": "Ann"}, "darkMode": True, "notifySms": True}
        storage = MemoryLocalStore({SETTINGS_KEY: json.dumps(stored), ROLE_KEY: '"owner"'})
        prefs = PreferenceStore(storage)

        await prefs.load()

        assert prefs.settings.dark_mode is True
        assert prefs.settings.notify_sms is True
        assert prefs.settings.profile.name == "Ann"
        assert prefs.role == UserRole.OWNER

    @pytest.mark.asyncio
    async def test_invalid_values_fall_back_to_defaults(self):
        storage = MemoryLocalStore({SETTINGS_KEY: "{not json", ROLE_KEY: '"landlord"'})
        prefs = PreferenceStore(storage)

        await prefs.load()

        assert prefs.settings == AppSettings()
        assert prefs.role == UserRole.ADMIN


class TestWriteThrough:
    @pytest.mark.asyncio
    async def test_update_settings_persists(self):
        storage = MemoryLocalStore()
        prefs = PreferenceStore(storage)

        await prefs.update_settings(dark_mode=True, profile={"phone": "+32 400"})

        persisted = json.loads(await storage.get(SETTINGS_KEY))
        assert persisted["darkMode"] is True
        assert persisted["profile"]["phone"] == "+32 400"
        assert persisted["profile"]["name"] == "Broker"

    @pytest.mark.asyncio
    async def test_set_role_persists_and_updates_label(self):
        storage = MemoryLocalStore()
        prefs = PreferenceStore(storage)

        await prefs.set_role(UserRole.MAINTENANCE)

        assert json.loads(await storage.get(ROLE_KEY)) == "maintenance"
        assert prefs.settings.profile.role == "Maintenance"

    @pytest.mark.asyncio
    async def test_reset_does_not_write(self):
        storage = MemoryLocalStore()
        prefs = PreferenceStore(storage)
        await prefs.set_role(UserRole.RENTER)
        await storage.delete(SETTINGS_KEY)
        await storage.delete(ROLE_KEY)

        await prefs.reset()

        assert prefs.role == UserRole.ADMIN
        assert prefs.settings == AppSettings()
        assert storage.keys() == set()
