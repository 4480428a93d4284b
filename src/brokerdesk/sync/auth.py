"""Authentication collaborator: session models, interface, GoTrue adapter.

The sync core only needs three facts from authentication: whether a session is
present, the user id, and the user email (plus the role hint in the user
metadata). Everything else about auth stays inside the adapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field

from src.brokerdesk.sync.client import RemoteResponse
from src.brokerdesk.sync.errors import RemoteError

logger = structlog.get_logger(__name__)


class AuthUser(BaseModel):
    """Authenticated identity as reported by the auth service."""

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    """Opaque token plus identity."""

    access_token: str
    refresh_token: str | None = None
    user: AuthUser


AuthListener = Callable[[AuthSession | None], Awaitable[None]]


class AuthClient(ABC):
    """Abstract interface for the authentication service.

    Subclasses implement the three remote operations; listener bookkeeping is
    shared. Listeners receive the new session, or None after sign-out.
    """

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []

    @abstractmethod
    async def get_session(self) -> AuthSession | None:
        """Return the current session, or None when signed out."""
        ...

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> RemoteResponse:
        """Sign in; data is the new AuthSession on success."""
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session. Always leaves the client signed out."""
        ...

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self, session: AuthSession | None) -> None:
        for listener in list(self._listeners):
            await listener(session)


class SupabaseAuthClient(AuthClient):
    """GoTrue (Supabase Auth) adapter over httpx.

    The session is held in memory; ``access_token`` is read by the table
    client so row-level security sees the signed-in user.

    Args:
        base_url: Project URL, e.g. ``https://xyz.supabase.co``.
        api_key: Public anon key sent as ``apikey``.
        timeout: Request timeout in seconds.
        session: Optional session restored from a previous run.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        session: AuthSession | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self._auth_url = base_url.rstrip("/") + "/auth/v1"
        self._api_key = api_key
        self._timeout = timeout
        self._session = session
        self._transport = transport

    @property
    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"apikey": self._api_key, "Content-Type": "application/json"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def get_session(self) -> AuthSession | None:
        return self._session

    async def sign_in_with_password(self, email: str, password: str) -> RemoteResponse:
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self._auth_url}/token",
                    params={"grant_type": "password"},
                    json={"email": email, "password": password},
                )
        except httpx.HTTPError as exc:
            logger.warning("auth.sign_in_transport_error", error=str(exc))
            return RemoteResponse.failure(RemoteError(message=str(exc)))

        body = _json_or_empty(response)
        if response.status_code >= 400:
            error = RemoteError(
                message=str(
                    body.get("error_description")
                    or body.get("msg")
                    or body.get("message")
                    or f"HTTP {response.status_code}"
                ),
                code=str(body.get("error") or body.get("error_code") or "") or None,
                status=response.status_code,
            )
            logger.info("auth.sign_in_rejected", email=email, status=response.status_code)
            return RemoteResponse.failure(error)

        user = body.get("user") or {}
        session = AuthSession(
            access_token=str(body.get("access_token", "")),
            refresh_token=body.get("refresh_token"),
            user=AuthUser(
                id=str(user.get("id", "")),
                email=user.get("email"),
                user_metadata=user.get("user_metadata") or {},
            ),
        )
        self._session = session
        logger.info("auth.signed_in", user_id=session.user.id)
        await self._notify(session)
        return RemoteResponse.success(session)

    async def sign_out(self) -> None:
        token = self.access_token
        self._session = None
        if token:
            try:
                async with self._client() as client:
                    await client.post(
                        f"{self._auth_url}/logout",
                        headers={"Authorization": f"Bearer {token}"},
                    )
            except httpx.HTTPError as exc:
                # The local session is already gone; the server token expires on its own.
                logger.warning("auth.sign_out_transport_error", error=str(exc))
        logger.info("auth.signed_out")
        await self._notify(None)


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
