"""Integration test fixtures: in-memory app, async client, signed-in accounts."""

import os
import tempfile

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Force test config BEFORE any app imports
_TMP_DIR = tempfile.mkdtemp(prefix="incidentdesk-tests-")
os.environ["DEBUG"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-integration-tests"
os.environ["EVIDENCE_DIR"] = os.path.join(_TMP_DIR, "evidence")
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")

import incidentdesk.database as db_mod
import incidentdesk.dependencies as dep_mod

PASSWORD = "integration-pass-1"


def _reset_singletons():
    """Reset all module-level singletons so each test session starts clean."""
    db_mod._engine = None
    db_mod._session_factory = None
    dep_mod._config_instance = None
    dep_mod._record_store = None
    dep_mod._incident_service = None
    dep_mod._account_service = None
    dep_mod._attachment_storage = None
    dep_mod._login_limiter = None


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_app():
    """Create test app with in-memory database (shared via StaticPool)."""
    _reset_singletons()

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Inject into database module BEFORE app import
    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    dep_mod.get_app_config()

    from incidentdesk.main import app
    from incidentdesk.models.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield app

    await engine.dispose()
    _reset_singletons()


@pytest_asyncio.fixture(loop_scope="session")
async def client(test_app):
    """Async HTTP client for testing."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _signed_in(client, email, full_name):
    resp = await client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code == 401:
        resp = await client.post(
            "/api/v1/auth/register",
            json={"full_name": full_name, "email": email, "password": PASSWORD},
        )
    assert resp.status_code in (200, 201), f"Sign-in failed: {resp.text}"
    data = resp.json()
    return {"Authorization": f"Bearer {data['access_token']}"}, data["account"]


@pytest_asyncio.fixture(loop_scope="session")
async def officer(client):
    """(headers, account) for the reporting officer."""
    return await _signed_in(client, "officer@example.com", "Olivia Officer")


@pytest_asyncio.fixture(loop_scope="session")
async def supervisor(client):
    """(headers, account) for a second account used as actor and assignee."""
    return await _signed_in(client, "supervisor@example.com", "Sam Supervisor")
