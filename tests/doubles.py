"""In-memory test doubles for the remote table and auth collaborators.

Provides:
- InMemoryTableClient: TableClient over dicts, with missing tables, rejected
  columns, forced failures, held calls and a call log
- FakeAuthClient: AuthClient with a fixed account list
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Any

from src.brokerdesk.sync.auth import AuthClient, AuthSession, AuthUser
from src.brokerdesk.sync.client import RemoteResponse, Row, TableClient
from src.brokerdesk.sync.errors import RemoteError


def missing_relation_error(table: str) -> RemoteError:
    return RemoteError(message=f'relation "public.{table}" does not exist', code="42P01")


def schema_cache_error(table: str, column: str) -> RemoteError:
    return RemoteError(
        message=f"Could not find the '{column}' column of '{table}' in the schema cache",
        code="PGRST204",
        status=400,
    )


# ── In-Memory Test Doubles ──────────────────────────────────────────────────


class InMemoryTableClient(TableClient):
    """In-memory TableClient for testing without a remote store.

    Args:
        tables: Initial rows per table. Tables not listed exist and are empty,
            unless named in ``missing``.
        missing: Tables that do not exist (missing-relation on every call).
        rejected_columns: Per table, columns the server rejects as unknown.
    """

    def __init__(
        self,
        tables: dict[str, list[Row]] | None = None,
        missing: set[str] | None = None,
        rejected_columns: dict[str, set[str]] | None = None,
    ) -> None:
        self.tables: dict[str, list[Row]] = {
            name: [dict(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self.missing: set[str] = set(missing or ())
        self.rejected_columns: dict[str, set[str]] = dict(rejected_columns or {})
        self.failures: dict[tuple[str, str], RemoteError] = {}
        self.held: dict[tuple[str, str], asyncio.Event] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self._ids = itertools.count(1)

    # ── Test controls ───────────────────────────────────────────────────

    def fail(self, operation: str, table: str, message: str = "network down") -> None:
        """Make every ``operation`` on ``table`` fail with a transient error."""
        self.failures[(operation, table)] = RemoteError(message=message, status=503)

    def hold(self, operation: str, table: str) -> asyncio.Event:
        """Block ``operation`` on ``table`` until the returned event is set."""
        event = asyncio.Event()
        self.held[(operation, table)] = event
        return event

    def calls_for(self, operation: str, table: str | None = None) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] == operation and (table is None or c[1] == table)]

    # ── Internals ───────────────────────────────────────────────────────

    async def _gate(self, operation: str, table: str) -> RemoteError | None:
        event = self.held.get((operation, table))
        if event is not None:
            await event.wait()
        if table in self.missing:
            return missing_relation_error(table)
        return self.failures.get((operation, table))

    def _rejected(self, table: str, columns: dict[str, Any]) -> RemoteError | None:
        for column in columns:
            if column in self.rejected_columns.get(table, set()):
                return schema_cache_error(table, column)
        return None

    # ── TableClient ─────────────────────────────────────────────────────

    async def select(self, table: str, filters: dict[str, Any] | None = None) -> RemoteResponse:
        self.calls.append(("select", table, dict(filters or {})))
        error = await self._gate("select", table)
        if error is not None:
            return RemoteResponse.failure(error)
        rows = [
            dict(r)
            for r in self.tables.get(table, [])
            if all(r.get(k) == v for k, v in (filters or {}).items())
        ]
        return RemoteResponse.success(rows)

    async def insert(self, table: str, payload: Row) -> RemoteResponse:
        self.calls.append(("insert", table, dict(payload)))
        error = await self._gate("insert", table) or self._rejected(table, payload)
        if error is not None:
            return RemoteResponse.failure(error)
        row = {"id": f"{table}-{next(self._ids)}", **payload}
        self.tables.setdefault(table, []).append(row)
        return RemoteResponse.success(dict(row))

    async def update(self, table: str, row_id: str, patch: Row) -> RemoteResponse:
        self.calls.append(("update", table, {"id": row_id, **patch}))
        error = await self._gate("update", table) or self._rejected(table, patch)
        if error is not None:
            return RemoteResponse.failure(error)
        for row in self.tables.get(table, []):
            if row.get("id") == row_id:
                row.update(patch)
        return RemoteResponse.success()

    async def delete(self, table: str, row_id: str) -> RemoteResponse:
        self.calls.append(("delete", table, {"id": row_id}))
        error = await self._gate("delete", table)
        if error is not None:
            return RemoteResponse.failure(error)
        self.tables[table] = [r for r in self.tables.get(table, []) if r.get("id") != row_id]
        return RemoteResponse.success()


def make_session(
    user_id: str = "user-1",
    email: str | None = "broker@example.com",
    **metadata: Any,
) -> AuthSession:
    return AuthSession(
        access_token=f"token-{user_id}",
        user=AuthUser(id=user_id, email=email, user_metadata=metadata),
    )


class FakeAuthClient(AuthClient):
    """AuthClient holding accounts in memory.

    Args:
        accounts: email -> (password, session issued on sign-in).
        session: Session already present at startup.
    """

    def __init__(
        self,
        accounts: dict[str, tuple[str, AuthSession]] | None = None,
        session: AuthSession | None = None,
    ) -> None:
        super().__init__()
        self.accounts = dict(accounts or {})
        self.session = session

    async def get_session(self) -> AuthSession | None:
        return self.session

    async def sign_in_with_password(self, email: str, password: str) -> RemoteResponse:
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            return RemoteResponse.failure(
                RemoteError(message="Invalid login credentials", code="invalid_grant", status=400)
            )
        self.session = account[1]
        await self._notify(self.session)
        return RemoteResponse.success(self.session)

    async def sign_out(self) -> None:
        self.session = None
        await self._notify(None)
