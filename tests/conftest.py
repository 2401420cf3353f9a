"""Shared test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from incidentdesk.models.base import Base
from incidentdesk.store import SqlRecordStore


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory SQLite database per test, foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _fk_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory):
    return SqlRecordStore(session_factory)


@pytest_asyncio.fixture
async def alice(store):
    return await store.insert("accounts", {
        "full_name": "Alice Ng",
        "email": "alice@example.com",
        "password_hash": "x",
    })


@pytest_asyncio.fixture
async def bob(store):
    return await store.insert("accounts", {
        "full_name": "Bob Osei",
        "email": "bob@example.com",
        "password_hash": "x",
    })


@pytest.fixture
def mock_store():
    """A RecordStore double whose transaction() yields itself."""
    store = MagicMock()
    store.insert = AsyncMock()
    store.get_by_id = AsyncMock()
    store.query = AsyncMock(return_value=[])
    store.update = AsyncMock()

    tx = MagicMock()
    tx.__aenter__ = AsyncMock(return_value=store)
    tx.__aexit__ = AsyncMock(return_value=False)
    store.transaction = MagicMock(return_value=tx)
    return store
