"""Cache-version guard for locally persisted preferences.

Compares a constant version against the persisted marker once per session
start. On mismatch the named entries are deleted, preferences and the active
view go back to defaults, the marker is rewritten, and one full reload is
requested. A matching marker makes the check a no-op.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from src.brokerdesk.core.storage import LocalStore
from src.brokerdesk.session.gate import SessionGate
from src.brokerdesk.session.preferences import ROLE_KEY, SETTINGS_KEY, PreferenceStore

logger = structlog.get_logger(__name__)

# Bump when the persisted settings shape or the remote schema changes incompatibly.
CACHE_VERSION = "1"
CACHE_VERSION_KEY = "eburon_cache_version"
INVALIDATED_KEYS = (SETTINGS_KEY, ROLE_KEY)

ReloadCallback = Callable[[], Awaitable[object]]


class CacheVersionGuard:
    """Invalidates stale local state and triggers the follow-up reload.

    Args:
        storage: Local store holding the marker and the invalidated keys.
        preferences: Preference owner to reset.
        gate: Session gate whose active view is reset.
        reload: Called once after an invalidation to reload every collection.
        version: Expected marker value.
    """

    def __init__(
        self,
        storage: LocalStore,
        preferences: PreferenceStore,
        gate: SessionGate,
        reload: ReloadCallback,
        version: str = CACHE_VERSION,
    ) -> None:
        self._storage = storage
        self._preferences = preferences
        self._gate = gate
        self._reload = reload
        self._version = version
        self._checked = False

    def new_session(self) -> None:
        """Re-arm the guard for the next session start."""
        self._checked = False

    async def check(self) -> bool:
        """Run the version check; returns True when state was invalidated.

        Only the first call after a session start does any work.
        """
        if self._checked:
            return False
        self._checked = True

        stored = await self._storage.get(CACHE_VERSION_KEY)
        if stored == self._version:
            return False

        logger.info("cache_guard.version_mismatch", stored=stored, expected=self._version)
        await self._invalidate()
        await self._storage.set(CACHE_VERSION_KEY, self._version)
        await self._reload()
        return True

    async def clear(self) -> None:
        """User-requested clear: same invalidation, marker kept, no reload here."""
        await self._invalidate()
        logger.info("cache_guard.cleared")

    async def _invalidate(self) -> None:
        for key in INVALIDATED_KEYS:
            await self._storage.delete(key)
        await self._preferences.reset()
        self._gate.reset_view()
        self._gate.enforce_view()
