"""SQLAlchemy implementation of the record store."""

from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import NotFoundError, StorageError, ValidationError
from ..models import Account, Incident, IncidentUpdate
from ..models.base import utcnow
from ..utils.logging import get_logger
from .base import RecordStore

logger = get_logger("store.sql")

_TABLES = {
    "accounts": Account,
    "incidents": Incident,
    "updates": IncidentUpdate,
}

_MULTI = (list, tuple, set, frozenset)


def _to_dict(row) -> dict:
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}


class SqlRecordStore(RecordStore):
    """Record store backed by an async SQLAlchemy session factory.

    Without a bound session every call runs in its own session and commits
    immediately. ``transaction()`` yields a store bound to a single session;
    its writes are flushed as they happen and committed together on exit.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        session: AsyncSession | None = None,
    ):
        if session_factory is None and session is None:
            raise ValueError("SqlRecordStore needs a session factory or a bound session")
        self._session_factory = session_factory
        self._session = session

    # --- helpers ---

    @staticmethod
    def _model(collection: str):
        try:
            return _TABLES[collection]
        except KeyError:
            raise ValidationError(f"Unknown collection: {collection}", field="collection") from None

    @staticmethod
    def _column(model, name: str):
        if name not in model.__table__.columns:
            raise ValidationError(f"Unknown field for {model.__tablename__}: {name}", field=name)
        return getattr(model, name)

    @asynccontextmanager
    async def _session_scope(self, op: str, collection: str):
        try:
            if self._session is not None:
                yield self._session
                await self._session.flush()
            else:
                async with self._session_factory() as session:
                    yield session
                    await session.commit()
        except SQLAlchemyError as exc:
            logger.error("storage_error", op=op, collection=collection, error=str(exc))
            raise StorageError(
                f"{op} on {collection} failed: {exc.__class__.__name__}",
                op=op,
                collection=collection,
            ) from exc

    # --- operations ---

    async def insert(self, collection: str, record: Mapping[str, Any]) -> dict:
        model = self._model(collection)
        for name in record:
            self._column(model, name)

        async with self._session_scope("insert", collection) as session:
            row = model(**record)
            session.add(row)
            await session.flush()
            result = _to_dict(row)
        return result

    async def get_by_id(self, collection: str, record_id: str) -> dict:
        model = self._model(collection)
        async with self._session_scope("get_by_id", collection) as session:
            row = await session.get(model, record_id)
            if row is None:
                raise NotFoundError(collection, record_id)
            result = _to_dict(row)
        return result

    async def query(
        self,
        collection: str,
        predicate: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> list[dict]:
        model = self._model(collection)
        stmt = select(model)
        for name, value in (predicate or {}).items():
            column = self._column(model, name)
            if isinstance(value, _MULTI):
                stmt = stmt.where(column.in_(list(value)))
            elif value is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == value)
        if order_by:
            descending = order_by.startswith("-")
            column = self._column(model, order_by.lstrip("-"))
            stmt = stmt.order_by(column.desc() if descending else column.asc())

        async with self._session_scope("query", collection) as session:
            rows = (await session.execute(stmt)).scalars().all()
            result = [_to_dict(row) for row in rows]
        return result

    async def update(self, collection: str, record_id: str, changes: Mapping[str, Any]) -> None:
        model = self._model(collection)
        for name in changes:
            if name == "id":
                raise ValidationError("Record id is immutable", field="id")
            self._column(model, name)

        async with self._session_scope("update", collection) as session:
            row = await session.get(model, record_id)
            if row is None:
                raise NotFoundError(collection, record_id)
            for name, value in changes.items():
                setattr(row, name, value)
            if "updated_at" in model.__table__.columns and "updated_at" not in changes:
                row.updated_at = utcnow()

    @asynccontextmanager
    async def transaction(self):
        if self._session is not None:
            # Already inside a transaction: join it
            yield self
            return

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield SqlRecordStore(session=session)
        except SQLAlchemyError as exc:
            logger.error("storage_error", op="transaction", error=str(exc))
            raise StorageError(f"transaction failed: {exc.__class__.__name__}", op="transaction") from exc
