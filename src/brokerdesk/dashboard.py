"""Dashboard session: wires auth, role gate, cache guard and entity store together.

Startup order:
1. load preferences from the local store
2. cache-version check (may reset preferences and request a reload)
3. resolve the auth session and, when signed in, the role
4. load every collection once

Afterwards auth changes drive the store: a new identity reloads it, sign-out
resets it so late results from the previous session are discarded.
"""

from __future__ import annotations

from typing import Any

import structlog

from src.brokerdesk.core.storage import LocalStore
from src.brokerdesk.session.cache_guard import CacheVersionGuard
from src.brokerdesk.session.gate import SessionGate, SessionState
from src.brokerdesk.session.preferences import PreferenceStore
from src.brokerdesk.sync.auth import AuthClient, AuthSession
from src.brokerdesk.sync.client import RemoteResponse, TableClient
from src.brokerdesk.sync.schemas import AppSettings
from src.brokerdesk.sync.store import EntityStore, LoadReport

logger = structlog.get_logger(__name__)


class DashboardSession:
    """One dashboard install bound to one auth client and one remote store.

    Args:
        auth: Authentication collaborator.
        client: Remote table client.
        storage: Local store for preferences and the cache marker.
    """

    def __init__(self, auth: AuthClient, client: TableClient, storage: LocalStore) -> None:
        self.auth = auth
        self.store = EntityStore(client)
        self.preferences = PreferenceStore(storage)
        self.gate = SessionGate(auth, client, self.preferences)
        self.guard = CacheVersionGuard(storage, self.preferences, self.gate, reload=self.reload)
        self.last_load: LoadReport | None = None
        self.reload_count = 0
        self._unsubscribe = None

    @property
    def state(self) -> SessionState:
        return self.gate.state

    @property
    def settings(self) -> AppSettings:
        return self.preferences.settings

    async def start(self) -> SessionState:
        """Run the startup sequence and subscribe to auth changes."""
        await self.preferences.load()
        self.guard.new_session()
        await self.guard.check()

        if self._unsubscribe is None:
            self._unsubscribe = self.auth.on_auth_state_change(self._on_auth_change)

        state = await self.gate.start()
        if state == SessionState.AUTHENTICATED:
            await self._load()
        logger.info("dashboard.started", state=state.value, role=self.gate.role.value)
        return state

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def sign_in(self, email: str, password: str) -> RemoteResponse:
        """Sign in; the auth change listener resolves the role and loads data."""
        response = await self.auth.sign_in_with_password(email, password)
        if not response.ok:
            logger.info("dashboard.sign_in_failed", email=email)
        return response

    async def sign_out(self) -> None:
        await self.auth.sign_out()

    async def reload(self) -> LoadReport | None:
        """Full reload of every collection (no-op until a session exists).

        The property table is resolved again as part of the reload.
        """
        self.reload_count += 1
        if not self.gate.is_authenticated:
            logger.info("dashboard.reload_deferred", state=self.gate.state.value)
            return None
        return await self._load()

    async def clear_cache(self) -> LoadReport | None:
        """Drop cached preferences, return to defaults, reload from the remote store."""
        await self.guard.clear()
        return await self.reload()

    async def update_settings(self, **changes: Any) -> AppSettings:
        return await self.preferences.update_settings(**changes)

    async def _load(self) -> LoadReport:
        report = await self.store.load_all()
        self.last_load = report
        return report

    async def _on_auth_change(self, session: AuthSession | None) -> None:
        changed = await self.gate.handle_auth_change(session)
        if session is None:
            self.store.reset()
            self.last_load = None
        elif changed:
            # A different user must not see the previous user's rows.
            self.store.reset()
            await self._load()
