"""Locally persisted preferences: the settings object and the cached role.

Lifecycle: initialized from the persisted values (missing or unreadable values
fall back to defaults), written through on every change, and reset explicitly
by the cache-version guard.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from pydantic import ValidationError

from src.brokerdesk.core.storage import LocalStore
from src.brokerdesk.sync.schemas import AppSettings, UserRole

logger = structlog.get_logger(__name__)

SETTINGS_KEY = "eburon_settings"
ROLE_KEY = "eburon_role"

DEFAULT_ROLE = UserRole.ADMIN

ROLE_LABELS: dict[UserRole, str] = {
    UserRole.ADMIN: "Broker / Agent",
    UserRole.OWNER: "Property Owner",
    UserRole.MAINTENANCE: "Maintenance",
    UserRole.RENTER: "Renter",
}


def default_settings() -> AppSettings:
    return AppSettings()


class PreferenceStore:
    """Owns AppSettings and the cached role for one dashboard install.

    Args:
        storage: Local key/value store the preferences persist to.
    """

    def __init__(self, storage: LocalStore) -> None:
        self._storage = storage
        self._settings = default_settings()
        self._role = DEFAULT_ROLE

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def role(self) -> UserRole:
        return self._role

    async def load(self) -> None:
        """Read persisted settings and role, keeping defaults for anything unreadable."""
        raw_settings = await self._storage.get(SETTINGS_KEY)
        if raw_settings:
            try:
                self._settings = AppSettings.model_validate_json(raw_settings)
            except ValidationError:
                logger.warning("preferences.settings_unreadable")
                self._settings = default_settings()

        raw_role = await self._storage.get(ROLE_KEY)
        if raw_role:
            try:
                self._role = UserRole(json.loads(raw_role))
            except (ValueError, TypeError):
                logger.warning("preferences.role_unreadable", value=raw_role)
                self._role = DEFAULT_ROLE

    async def update_settings(self, **changes: Any) -> AppSettings:
        """Merge top-level changes (``profile`` merges field by field) and persist."""
        current = self._settings.model_dump()
        profile_changes = changes.pop("profile", None)
        if profile_changes:
            if hasattr(profile_changes, "model_dump"):
                profile_changes = profile_changes.model_dump(exclude_unset=True)
            current["profile"] = {**current["profile"], **profile_changes}
        current.update(changes)
        self._settings = AppSettings.model_validate(current)
        await self._persist_settings()
        return self._settings

    async def set_role(self, role: UserRole) -> None:
        """Persist the role and keep the profile's role label in step."""
        self._role = role
        await self._storage.set(ROLE_KEY, json.dumps(role.value))
        label = ROLE_LABELS[role]
        if self._settings.profile.role != label:
            await self.update_settings(profile={"role": label})

    async def reset(self) -> None:
        """Return to defaults in memory without writing them back."""
        self._settings = default_settings()
        self._role = DEFAULT_ROLE

    async def _persist_settings(self) -> None:
        await self._storage.set(SETTINGS_KEY, self._settings.model_dump_json(by_alias=True))
