"""Unit tests for PropertyTableResolver's current/legacy decision procedure."""

from __future__ import annotations

import pytest

from src.brokerdesk.sync.resolver import PropertyTableResolver
from tests.doubles import InMemoryTableClient


def _rows(n: int, prefix: str) -> list[dict]:
    return [{"id": f"{prefix}-{i}", "name": f"{prefix} {i}"} for i in range(n)]


class TestResolution:
    @pytest.mark.asyncio
    async def test_current_with_rows_wins(self):
        """listings returns 2 rows -> listings, legacy never queried."""
        client = InMemoryTableClient({"listings": _rows(2, "l"), "properties": _rows(5, "p")})
        resolver = PropertyTableResolver(client)

        result = await resolver.resolve()

        assert result.table == "listings"
        assert len(result.rows) == 2
        assert resolver.resolved_table == "listings"
        assert client.calls_for("select", "properties") == []

    @pytest.mark.asyncio
    async def test_empty_current_and_populated_legacy_picks_legacy(self):
        """listings returns 0 rows, properties returns 3 -> properties."""
        client = InMemoryTableClient({"listings": [], "properties": _rows(3, "p")})
        resolver = PropertyTableResolver(client)

        result = await resolver.resolve()

        assert result.table == "properties"
        assert len(result.rows) == 3
        assert resolver.is_legacy

    @pytest.mark.asyncio
    async def test_both_empty_picks_current(self):
        client = InMemoryTableClient({"listings": [], "properties": []})
        resolver = PropertyTableResolver(client)

        result = await resolver.resolve()

        assert result.ok
        assert result.table == "listings"
        assert result.rows == []

    @pytest.mark.asyncio
    async def test_missing_current_with_empty_legacy_picks_legacy(self):
        client = InMemoryTableClient({"properties": []}, missing={"listings"})
        resolver = PropertyTableResolver(client)

        result = await resolver.resolve()

        assert result.ok
        assert result.table == "properties"

    @pytest.mark.asyncio
    async def test_current_failure_falls_back_to_populated_legacy(self):
        client = InMemoryTableClient({"properties": _rows(1, "p")})
        client.fail("select", "listings")

        result = await PropertyTableResolver(client).resolve()

        assert result.table == "properties"
        assert len(result.rows) == 1

    @pytest.mark.asyncio
    async def test_both_fail_reports_error(self):
        """Non-missing-relation failure on current and failing legacy -> error, nothing chosen."""
        client = InMemoryTableClient()
        client.fail("select", "listings", "JWT expired")
        client.fail("select", "properties", "JWT expired")
        resolver = PropertyTableResolver(client)

        result = await resolver.resolve()

        assert not result.ok
        assert result.rows == []
        assert result.error.message == "JWT expired"
        assert resolver.resolved_table is None
        assert resolver.table == "listings"

    @pytest.mark.asyncio
    async def test_transient_current_failure_with_empty_legacy_is_error(self):
        client = InMemoryTableClient({"properties": []})
        client.fail("select", "listings")

        result = await PropertyTableResolver(client).resolve()

        assert not result.ok

    @pytest.mark.asyncio
    async def test_reset_forgets_decision(self):
        client = InMemoryTableClient({"properties": _rows(1, "p")})
        resolver = PropertyTableResolver(client)
        await resolver.resolve()

        resolver.reset()

        assert resolver.resolved_table is None
        assert resolver.table == "listings"
