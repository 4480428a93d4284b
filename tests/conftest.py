"""Fixtures wiring the in-memory doubles into a DashboardSession."""

from __future__ import annotations

import pytest
import pytest_asyncio

from src.brokerdesk.core.storage import MemoryLocalStore
from src.brokerdesk.dashboard import DashboardSession
from tests.doubles import FakeAuthClient, InMemoryTableClient, make_session


@pytest.fixture
def table_client() -> InMemoryTableClient:
    return InMemoryTableClient()


@pytest.fixture
def local_store() -> MemoryLocalStore:
    return MemoryLocalStore()


@pytest.fixture
def auth() -> FakeAuthClient:
    return FakeAuthClient(
        accounts={"broker@example.com": ("secret", make_session("user-1", "broker@example.com"))}
    )


@pytest_asyncio.fixture
async def dashboard(auth, table_client, local_store) -> DashboardSession:
    """Started dashboard session, not yet signed in."""
    session = DashboardSession(auth, table_client, local_store)
    await session.start()
    yield session
    await session.stop()
