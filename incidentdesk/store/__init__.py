"""Record store: persistence collaborator for accounts, incidents and timeline updates."""

from .base import COLLECTIONS, RecordStore
from .sql import SqlRecordStore

__all__ = ["COLLECTIONS", "RecordStore", "SqlRecordStore"]
