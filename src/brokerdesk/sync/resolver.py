"""Property table resolution between the current and legacy table names.

Property data lives either in ``listings`` (current) or, on deployments that
have not migrated, in ``properties`` (legacy). Resolution is a fixed decision
procedure run at load time; its outcome is remembered and used for every
later property read and write in the session. The two tables are never
merged.

Priority:
1. current returns rows -> current
2. legacy returns rows -> legacy
3. current succeeded but is empty -> current (empty collection)
4. current is a missing relation and legacy succeeded (even empty) -> legacy
Otherwise the collection stays empty and the failure is reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from src.brokerdesk.sync.client import Row, TableClient
from src.brokerdesk.sync.errors import RemoteError

logger = structlog.get_logger(__name__)

CURRENT_PROPERTY_TABLE = "listings"
LEGACY_PROPERTY_TABLE = "properties"


@dataclass
class TableResolution:
    """Outcome of one resolution run."""

    table: str
    rows: list[Row] = field(default_factory=list)
    error: RemoteError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PropertyTableResolver:
    """Decides which remote table is authoritative for property data.

    Args:
        client: Remote table client.
        current: Name of the current table.
        legacy: Name of the legacy table.
    """

    def __init__(
        self,
        client: TableClient,
        current: str = CURRENT_PROPERTY_TABLE,
        legacy: str = LEGACY_PROPERTY_TABLE,
    ) -> None:
        self._client = client
        self._current = current
        self._legacy = legacy
        self._resolved: str | None = None

    @property
    def resolved_table(self) -> str | None:
        """The table chosen by the last successful resolution, if any."""
        return self._resolved

    @property
    def table(self) -> str:
        """Table for reads and writes: the resolved one, else the current one."""
        return self._resolved or self._current

    @property
    def is_legacy(self) -> bool:
        return self.table == self._legacy

    def reset(self) -> None:
        """Forget the decision (sign-out)."""
        self._resolved = None

    async def resolve(self) -> TableResolution:
        """Probe current, then legacy if needed, and remember the choice."""
        current = await self._client.select(self._current)
        if current.ok and current.rows:
            return self._choose(self._current, current.rows)

        legacy = await self._client.select(self._legacy)
        if legacy.ok and legacy.rows:
            return self._choose(self._legacy, legacy.rows)

        if current.ok:
            return self._choose(self._current, [])

        if current.error is not None and current.error.is_missing_relation and legacy.ok:
            return self._choose(self._legacy, legacy.rows)

        error = current.error or legacy.error
        logger.warning(
            "resolver.no_property_table",
            current_error=current.error.message if current.error else None,
            legacy_error=legacy.error.message if legacy.error else None,
        )
        return TableResolution(table=self.table, rows=[], error=error)

    def _choose(self, table: str, rows: list[Row]) -> TableResolution:
        if self._resolved != table:
            logger.info("resolver.property_table_selected", table=table, rows=len(rows))
        self._resolved = table
        return TableResolution(table=table, rows=rows)
