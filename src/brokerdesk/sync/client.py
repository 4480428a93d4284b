"""Remote table client abstract base class.

Every remote backend implements this ABC. Calls never raise for remote
failures: each returns a RemoteResponse holding either the data payload or a
classified RemoteError, so callers branch on the outcome instead of
re-matching error strings.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from src.brokerdesk.sync.errors import RemoteError

Row = dict[str, Any]


class RemoteResponse(BaseModel):
    """Outcome of one remote call: ``data`` on success, ``error`` on failure."""

    data: Any = None
    error: RemoteError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def rows(self) -> list[Row]:
        """Data as a list of rows (empty on failure or non-list payloads)."""
        if self.error is not None or not isinstance(self.data, list):
            return []
        return [r for r in self.data if isinstance(r, dict)]

    @classmethod
    def success(cls, data: Any = None) -> RemoteResponse:
        return cls(data=data)

    @classmethod
    def failure(cls, error: RemoteError) -> RemoteResponse:
        return cls(error=error)


class TableClient(ABC):
    """Abstract interface for generic per-table CRUD against the remote store.

    Methods:
        select: Fetch rows, optionally filtered by column equality.
        insert: Insert one row, returning the stored row.
        update: Patch the row with the given id.
        delete: Delete the row with the given id.
    """

    @abstractmethod
    async def select(
        self, table: str, filters: dict[str, Any] | None = None
    ) -> RemoteResponse:
        """Fetch all rows of table matching every ``column == value`` filter."""
        ...

    @abstractmethod
    async def insert(self, table: str, payload: Row) -> RemoteResponse:
        """Insert payload, returning the stored row as data."""
        ...

    @abstractmethod
    async def update(self, table: str, row_id: str, patch: Row) -> RemoteResponse:
        """Apply patch to the row identified by row_id."""
        ...

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> RemoteResponse:
        """Delete the row identified by row_id."""
        ...
