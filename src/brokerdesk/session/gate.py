"""Session state machine and role-based view gate.

States: SESSION_LOADING -> UNAUTHENTICATED | AUTHENTICATED. Sign-in moves
UNAUTHENTICATED to AUTHENTICATED, sign-out moves back.

The role is resolved when a session is entered and again only when the
authenticated user id changes. Precedence:

1. ``role`` on the remote profile row (``user_profiles``, then ``users``)
2. ``role`` in the session's user metadata
3. the locally cached role
4. ``admin``

The remote profile is authoritative when it disagrees with session metadata.
Lookup failures never block the session; they fall through to the next source.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import structlog

from src.brokerdesk.session.preferences import PreferenceStore
from src.brokerdesk.sync.auth import AuthClient, AuthSession, AuthUser
from src.brokerdesk.sync.client import Row, TableClient
from src.brokerdesk.sync.schemas import UserRole, ViewName

logger = structlog.get_logger(__name__)

PROFILE_TABLES = ("user_profiles", "users")

DEFAULT_VIEW = ViewName.DASHBOARD

# Order matters: the first entry is the redirect target.
ROLE_VIEWS: dict[UserRole, tuple[ViewName, ...]] = {
    UserRole.ADMIN: (
        ViewName.DASHBOARD,
        ViewName.INBOX,
        ViewName.LEADS,
        ViewName.PROPERTIES,
        ViewName.TASKS,
        ViewName.CALENDAR,
        ViewName.FINANCE,
        ViewName.REPORTS,
        ViewName.SETTINGS,
        ViewName.TOOLS,
    ),
    UserRole.OWNER: (
        ViewName.DASHBOARD,
        ViewName.PROPERTIES,
        ViewName.FINANCE,
        ViewName.INBOX,
        ViewName.TASKS,
        ViewName.CALENDAR,
        ViewName.REPORTS,
        ViewName.SETTINGS,
    ),
    UserRole.MAINTENANCE: (
        ViewName.DASHBOARD,
        ViewName.TASKS,
        ViewName.CALENDAR,
        ViewName.INBOX,
        ViewName.SETTINGS,
    ),
    UserRole.RENTER: (
        ViewName.DASHBOARD,
        ViewName.PROPERTIES,
        ViewName.CALENDAR,
        ViewName.INBOX,
        ViewName.SETTINGS,
    ),
}

_ROLE_ALIASES: dict[str, UserRole] = {
    "admin": UserRole.ADMIN,
    "broker": UserRole.ADMIN,
    "agent": UserRole.ADMIN,
    "owner": UserRole.OWNER,
    "maintenance": UserRole.MAINTENANCE,
    "contractor": UserRole.MAINTENANCE,
    "renter": UserRole.RENTER,
    "tenant": UserRole.RENTER,
}


class SessionState(str, Enum):
    SESSION_LOADING = "session_loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


def normalize_user_role(value: Any) -> UserRole:
    """Map a raw role label (any casing, known aliases) to a UserRole; unknown -> admin."""
    if isinstance(value, UserRole):
        return value
    key = str(value or "").strip().lower()
    return _ROLE_ALIASES.get(key, UserRole.ADMIN)


def _non_blank(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def profile_name(row: Row | None) -> str | None:
    """Display name from a profile row, checking the known column spellings."""
    if not row:
        return None
    meta = row.get("raw_user_meta_data") or {}
    if not isinstance(meta, dict):
        meta = {}
    for candidate in (
        row.get("full_name"),
        row.get("fullName"),
        row.get("name"),
        meta.get("full_name"),
        meta.get("fullName"),
    ):
        if _non_blank(candidate):
            return candidate
    return None


class SessionGate:
    """Tracks the auth session, the resolved role, and the active view.

    Args:
        auth: Authentication collaborator.
        client: Remote table client used for the profile lookup.
        preferences: Owner of the cached role and the settings profile.
    """

    def __init__(
        self,
        auth: AuthClient,
        client: TableClient,
        preferences: PreferenceStore,
    ) -> None:
        self._auth = auth
        self._client = client
        self._preferences = preferences
        self._state = SessionState.SESSION_LOADING
        self._session: AuthSession | None = None
        self._user_id: str | None = None
        self._active_view = DEFAULT_VIEW

    # ── State ───────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> AuthSession | None:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._state == SessionState.AUTHENTICATED

    @property
    def role(self) -> UserRole:
        return self._preferences.role

    @property
    def active_view(self) -> ViewName:
        return self._active_view

    def permitted_views(self) -> tuple[ViewName, ...]:
        return ROLE_VIEWS[self.role]

    def is_permitted(self, view: ViewName) -> bool:
        return view in self.permitted_views()

    # ── Transitions ─────────────────────────────────────────────────────

    async def start(self) -> SessionState:
        """Leave SESSION_LOADING using whatever session the auth service holds."""
        session = await self._auth.get_session()
        await self.handle_auth_change(session)
        return self._state

    async def handle_auth_change(self, session: AuthSession | None) -> bool:
        """Apply a session change.

        Returns True when the user identity changed and is still the current one
        once its role has been resolved.
        """
        if session is None:
            changed = self._user_id is not None
            self._session = None
            self._user_id = None
            self._state = SessionState.UNAUTHENTICATED
            if changed:
                logger.info("gate.signed_out")
            return changed

        self._session = session
        self._state = SessionState.AUTHENTICATED
        if session.user.id == self._user_id:
            return False

        self._user_id = session.user.id
        await self._resolve_role(session.user)
        # A sign-out or another sign-in may have landed while the role was resolving.
        return self._user_id == session.user.id

    def reset_view(self) -> None:
        self._active_view = DEFAULT_VIEW

    def set_active_view(self, view: ViewName) -> ViewName:
        """Navigate to view; a view outside the role's set lands on the first permitted one."""
        self._active_view = view
        return self.enforce_view()

    def enforce_view(self) -> ViewName:
        permitted = self.permitted_views()
        if self._active_view not in permitted:
            logger.info(
                "gate.view_redirected",
                role=self.role.value,
                requested=self._active_view.value,
                redirected_to=permitted[0].value,
            )
            self._active_view = permitted[0]
        return self._active_view

    # ── Role resolution ─────────────────────────────────────────────────

    async def _resolve_role(self, user: AuthUser) -> None:
        row: Row | None = None
        try:
            row = await self.fetch_profile(user)
        except Exception as exc:
            logger.warning("gate.profile_lookup_failed", user_id=user.id, error=str(exc))

        if self._user_id != user.id:
            logger.info("gate.stale_role_discarded", user_id=user.id)
            return

        db_role = row.get("role") if row else None
        meta_role = user.user_metadata.get("role")
        source = "profile" if db_role else "metadata" if meta_role else "cache"
        role = normalize_user_role(db_role or meta_role or self._preferences.role)

        await self._preferences.set_role(role)
        await self._sync_profile(row, user)
        self.enforce_view()
        logger.info("gate.role_resolved", user_id=user.id, role=role.value, source=source)

    async def fetch_profile(self, user: AuthUser) -> Row | None:
        """First profile row found in ``user_profiles`` then ``users``."""
        for table in PROFILE_TABLES:
            row = await self._fetch_profile_row(table, user)
            if row is not None:
                return row
        return None

    async def _fetch_profile_row(self, table: str, user: AuthUser) -> Row | None:
        by_id = await self._client.select(table, {"id": user.id})
        if by_id.ok and by_id.rows:
            return by_id.rows[0]
        if by_id.error is not None and by_id.error.is_missing_relation:
            return None

        # Older schemas key app users by email rather than auth id.
        if user.email:
            by_email = await self._client.select(table, {"email": user.email})
            if by_email.ok and by_email.rows:
                return by_email.rows[0]
        return None

    async def _sync_profile(self, row: Row | None, user: AuthUser) -> None:
        current = self._preferences.settings.profile
        name = (
            profile_name(row)
            or _non_blank(user.user_metadata.get("full_name"))
            or current.name
        )
        email = _non_blank((row or {}).get("email")) or _non_blank(user.email) or current.email
        if name != current.name or email != current.email:
            await self._preferences.update_settings(profile={"name": name, "email": email})
