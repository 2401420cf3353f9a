"""Error taxonomy shared by the store, the incident service and the HTTP layer.

Every error is terminal for the core: nothing here is retried internally,
callers decide on retry and backoff.
"""


class IncidentDeskError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(IncidentDeskError):
    """Caller-supplied data violates a precondition."""

    def __init__(self, message: str, field: str | None = None, **context):
        super().__init__(message, **context)
        self.field = field


class NotFoundError(IncidentDeskError):
    """A referenced identifier does not resolve."""

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} record not found: {record_id}", collection=collection, record_id=record_id)
        self.collection = collection
        self.record_id = record_id


class StorageError(IncidentDeskError):
    """The record store call failed (connectivity or constraint violation)."""


class Unauthenticated(IncidentDeskError):
    """No valid acting account."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)
