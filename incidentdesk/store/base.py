"""Record store interface: the persistence collaborator used by the services."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Mapping, Optional

COLLECTIONS = ("accounts", "incidents", "updates")


class RecordStore(ABC):
    """Per-collection create/read/update over plain dict records.

    Predicates are equality mappings ``{field: value}``; a list, tuple or set
    value matches any of its members and ``None`` matches NULL. ``order_by``
    names a field, prefixed with ``-`` for descending order.
    """

    @abstractmethod
    async def insert(self, collection: str, record: Mapping[str, Any]) -> dict:
        """Persist a new record and return it with generated id and timestamps."""
        ...

    @abstractmethod
    async def get_by_id(self, collection: str, record_id: str) -> dict:
        """Return one record. Raises NotFoundError when absent."""
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        predicate: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> list[dict]:
        ...

    @abstractmethod
    async def update(self, collection: str, record_id: str, changes: Mapping[str, Any]) -> None:
        """Apply a partial update. Raises NotFoundError when absent."""
        ...

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager["RecordStore"]:
        """Yield a store whose writes commit together, or not at all."""
        ...
