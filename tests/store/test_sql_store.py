"""Tests for SqlRecordStore against an in-memory SQLite database."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from incidentdesk.errors import NotFoundError, StorageError, ValidationError
from incidentdesk.store import SqlRecordStore


T0 = datetime(2020, 3, 1, 9, 0, tzinfo=timezone.utc)


def _incident(reporter_id, **overrides):
    record = {
        "title": "Door forced",
        "description": "Side entrance lock broken",
        "category": "Break-in",
        "location": "Warehouse B",
        "reporter_id": reporter_id,
    }
    record.update(overrides)
    return record


# ---------------------------------------------------------------------------
# insert / get_by_id
# ---------------------------------------------------------------------------

class TestInsertAndGet:

    @pytest.mark.asyncio
    async def test_insert_generates_id_and_timestamps(self, store, alice):
        row = await store.insert("incidents", _incident(alice["id"]))
        assert len(row["id"]) == 36
        assert row["status"] == "open"
        assert row["priority"] == "medium"
        assert row["evidence_urls"] == []
        assert row["created_at"] is not None
        assert row["updated_at"] is not None

    @pytest.mark.asyncio
    async def test_get_by_id_round_trips_json_column(self, store, alice):
        urls = ["https://files.example/a.jpg", "https://files.example/b.png"]
        row = await store.insert("incidents", _incident(alice["id"], evidence_urls=urls))
        fetched = await store.get_by_id("incidents", row["id"])
        assert fetched["evidence_urls"] == urls
        assert fetched["reporter_id"] == alice["id"]

    @pytest.mark.asyncio
    async def test_get_by_id_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            await store.get_by_id("incidents", "nope")
        assert exc_info.value.collection == "incidents"
        assert exc_info.value.record_id == "nope"

    @pytest.mark.asyncio
    async def test_unknown_collection_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.get_by_id("alerts", "x")

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, store, alice):
        with pytest.raises(ValidationError) as exc_info:
            await store.insert("incidents", _incident(alice["id"], severity="high"))
        assert exc_info.value.field == "severity"

    @pytest.mark.asyncio
    async def test_constraint_violation_becomes_storage_error(self, store, alice):
        # Duplicate email breaks the unique index
        with pytest.raises(StorageError) as exc_info:
            await store.insert("accounts", {
                "full_name": "Alice Again",
                "email": "alice@example.com",
                "password_hash": "x",
            })
        assert exc_info.value.__cause__ is not None

    @pytest.mark.asyncio
    async def test_dangling_reporter_rejected_by_foreign_key(self, store):
        with pytest.raises(StorageError):
            await store.insert("incidents", _incident("no-such-account"))


# ---------------------------------------------------------------------------
# query
# ---------------------------------------------------------------------------

class TestQuery:

    @pytest.mark.asyncio
    async def test_equality_predicate(self, store, alice):
        await store.insert("incidents", _incident(alice["id"], priority="high"))
        await store.insert("incidents", _incident(alice["id"], priority="low"))
        rows = await store.query("incidents", {"priority": "high"})
        assert [r["priority"] for r in rows] == ["high"]

    @pytest.mark.asyncio
    async def test_list_predicate_means_membership(self, store, alice, bob):
        rows = await store.query("accounts", {"id": [alice["id"], bob["id"], "ghost"]})
        assert {r["email"] for r in rows} == {"alice@example.com", "bob@example.com"}

    @pytest.mark.asyncio
    async def test_none_predicate_matches_null(self, store, alice, bob):
        await store.insert("incidents", _incident(alice["id"], title="unassigned"))
        await store.insert("incidents", _incident(alice["id"], title="taken", assigned_to=bob["id"]))
        rows = await store.query("incidents", {"assigned_to": None})
        assert [r["title"] for r in rows] == ["unassigned"]

    @pytest.mark.asyncio
    async def test_order_by_descending(self, store, alice):
        for i, title in enumerate(["first", "second", "third"]):
            await store.insert("incidents", _incident(
                alice["id"], title=title, created_at=T0 + timedelta(minutes=i),
            ))
        rows = await store.query("incidents", order_by="-created_at")
        assert [r["title"] for r in rows] == ["third", "second", "first"]

    @pytest.mark.asyncio
    async def test_order_by_ascending(self, store, alice, bob):
        rows = await store.query("accounts", order_by="full_name")
        assert [r["full_name"] for r in rows] == ["Alice Ng", "Bob Osei"]

    @pytest.mark.asyncio
    async def test_order_by_unknown_field_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.query("incidents", order_by="-severity")

    @pytest.mark.asyncio
    async def test_empty_collection(self, store):
        assert await store.query("updates") == []


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------

class TestUpdate:

    @pytest.mark.asyncio
    async def test_partial_update(self, store, alice):
        row = await store.insert("incidents", _incident(alice["id"]))
        await store.update("incidents", row["id"], {"status": "in_progress"})
        fetched = await store.get_by_id("incidents", row["id"])
        assert fetched["status"] == "in_progress"
        assert fetched["title"] == "Door forced"

    @pytest.mark.asyncio
    async def test_update_refreshes_updated_at(self, store, alice):
        row = await store.insert("incidents", _incident(
            alice["id"], created_at=T0, updated_at=T0,
        ))
        await store.update("incidents", row["id"], {"priority": "critical"})
        fetched = await store.get_by_id("incidents", row["id"])
        assert fetched["updated_at"].replace(tzinfo=timezone.utc) > T0

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            await store.update("incidents", "ghost", {"status": "closed"})

    @pytest.mark.asyncio
    async def test_id_is_immutable(self, store, alice):
        with pytest.raises(ValidationError):
            await store.update("accounts", alice["id"], {"id": "other"})


# ---------------------------------------------------------------------------
# transaction
# ---------------------------------------------------------------------------

class TestTransaction:

    @pytest.mark.asyncio
    async def test_writes_commit_together(self, store, alice):
        row = await store.insert("incidents", _incident(alice["id"]))
        async with store.transaction() as tx:
            await tx.update("incidents", row["id"], {"status": "closed"})
            await tx.insert("updates", {
                "incident_id": row["id"],
                "user_id": alice["id"],
                "update_type": "status_change",
                "content": "Status changed to: closed",
            })
        assert (await store.get_by_id("incidents", row["id"]))["status"] == "closed"
        assert len(await store.query("updates", {"incident_id": row["id"]})) == 1

    @pytest.mark.asyncio
    async def test_failure_rolls_back_earlier_writes(self, store, alice):
        row = await store.insert("incidents", _incident(alice["id"]))
        with pytest.raises(StorageError):
            async with store.transaction() as tx:
                await tx.update("incidents", row["id"], {"status": "closed"})
                # Unknown user_id violates the foreign key
                await tx.insert("updates", {
                    "incident_id": row["id"],
                    "user_id": "ghost",
                    "update_type": "status_change",
                    "content": "Status changed to: closed",
                })
        assert (await store.get_by_id("incidents", row["id"]))["status"] == "open"
        assert await store.query("updates") == []

    @pytest.mark.asyncio
    async def test_domain_error_rolls_back(self, store, alice):
        row = await store.insert("incidents", _incident(alice["id"]))
        with pytest.raises(NotFoundError):
            async with store.transaction() as tx:
                await tx.update("incidents", row["id"], {"status": "resolved"})
                await tx.get_by_id("incidents", "ghost")
        assert (await store.get_by_id("incidents", row["id"]))["status"] == "open"

    @pytest.mark.asyncio
    async def test_nested_transaction_joins_outer(self, store):
        async with store.transaction() as outer:
            async with outer.transaction() as inner:
                assert inner is outer


# ---------------------------------------------------------------------------
# Connectivity failures
# ---------------------------------------------------------------------------

class TestConnectivity:

    @pytest.mark.asyncio
    async def test_driver_error_becomes_storage_error(self):
        session = AsyncMock()
        session.__aenter__ = AsyncMock(return_value=session)
        session.__aexit__ = AsyncMock(return_value=False)
        session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down")))
        factory = MagicMock(return_value=session)

        store = SqlRecordStore(factory)
        with pytest.raises(StorageError) as exc_info:
            await store.query("incidents")
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_requires_factory_or_session(self):
        with pytest.raises(ValueError):
            SqlRecordStore()
