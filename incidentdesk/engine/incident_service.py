"""Incident Service: creation, status lifecycle, timeline and enrichment."""

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import NotFoundError, Unauthenticated, ValidationError
from ..schemas import (
    INCIDENT_PRIORITIES,
    INCIDENT_STATUSES,
    UPDATE_COMMENT,
    UPDATE_STATUS_CHANGE,
    AccountSummary,
    EnrichedIncident,
    EnrichedIncidentUpdate,
    Incident,
    IncidentFilter,
    IncidentUpdate,
    NewIncident,
)
from ..store import RecordStore
from ..utils.logging import get_logger

logger = get_logger("engine.incident_service")

STATUS_CHANGE_PREFIX = "Status changed to: "

_REQUIRED_TEXT = ("title", "description", "category", "location")


def _require_actor(account_id: Optional[str]) -> str:
    if not account_id:
        raise Unauthenticated()
    return account_id


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} must not be empty", field=field)
    return value


def _validate_status(status: str) -> str:
    if status not in INCIDENT_STATUSES:
        raise ValidationError(
            f"Unknown status {status!r}. Allowed: {list(INCIDENT_STATUSES)}", field="status"
        )
    return status


def _validate_priority(priority: str) -> str:
    if priority not in INCIDENT_PRIORITIES:
        raise ValidationError(
            f"Unknown priority {priority!r}. Allowed: {list(INCIDENT_PRIORITIES)}", field="priority"
        )
    return priority


def matches_filter(incident: Incident, flt: IncidentFilter) -> bool:
    """Intersection of the search, status and priority predicates."""
    if flt.status and incident.status != flt.status:
        return False
    if flt.priority and incident.priority != flt.priority:
        return False
    if flt.search:
        needle = flt.search.lower()
        if needle not in incident.title.lower() and needle not in incident.description.lower():
            return False
    return True


class IncidentService:
    """Owns incident creation, status transitions and timeline recording.

    All persistence goes through the record store; failures surface as
    ``StorageError`` and are never retried here.
    """

    def __init__(self, store: RecordStore):
        self._store = store

    # --- mutations ---

    async def create_incident(self, data: NewIncident | Mapping[str, Any], author_id: Optional[str]) -> Incident:
        """Persist a new incident reported by ``author_id``.

        Status is always ``open`` and the reporter is always the author,
        whatever the input carries.
        """
        author_id = _require_actor(author_id)
        if not isinstance(data, NewIncident):
            try:
                data = NewIncident.model_validate(dict(data))
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid incident input: {exc.error_count()} error(s)") from exc

        for field in _REQUIRED_TEXT:
            _require_text(getattr(data, field), field)
        _validate_priority(data.priority)

        row = await self._store.insert("incidents", {
            "title": data.title,
            "description": data.description,
            "category": data.category,
            "location": data.location,
            "priority": data.priority,
            "evidence_urls": list(data.evidence_urls),
            "status": "open",
            "reporter_id": author_id,
            "resolved_at": None,
        })
        incident = Incident.model_validate(row)
        logger.info(
            "incident_created",
            id=incident.id,
            priority=incident.priority,
            category=incident.category,
            evidence=len(incident.evidence_urls),
        )
        return incident

    async def transition_status(self, incident_id: str, new_status: str, actor_id: Optional[str]) -> None:
        """Move an incident to ``new_status`` and record it on the timeline.

        Any status may follow any other, including itself. ``resolved_at`` is
        stamped when entering ``resolved`` and cleared for every other target.
        The status write and the timeline entry commit in one transaction.
        """
        actor_id = _require_actor(actor_id)
        _validate_status(new_status)

        resolved_at = datetime.now(timezone.utc) if new_status == "resolved" else None
        async with self._store.transaction() as tx:
            await tx.update("incidents", incident_id, {
                "status": new_status,
                "resolved_at": resolved_at,
            })
            await tx.insert("updates", {
                "incident_id": incident_id,
                "user_id": actor_id,
                "update_type": UPDATE_STATUS_CHANGE,
                "content": f"{STATUS_CHANGE_PREFIX}{new_status}",
            })

        logger.info("incident_status_changed", id=incident_id, status=new_status, actor=actor_id)

    async def add_comment(self, incident_id: str, content: Optional[str], author_id: Optional[str]) -> IncidentUpdate:
        """Append a comment to the timeline. The incident itself is untouched."""
        author_id = _require_actor(author_id)
        _require_text(content, "content")
        await self._store.get_by_id("incidents", incident_id)

        row = await self._store.insert("updates", {
            "incident_id": incident_id,
            "user_id": author_id,
            "update_type": UPDATE_COMMENT,
            "content": content,
        })
        logger.info("incident_comment_added", id=incident_id, author=author_id)
        return IncidentUpdate.model_validate(row)

    async def assign_incident(
        self, incident_id: str, assignee_id: Optional[str], actor_id: Optional[str]
    ) -> EnrichedIncident:
        """Set or clear the assignee. Produces no timeline entry."""
        actor_id = _require_actor(actor_id)
        if assignee_id:
            await self._store.get_by_id("accounts", assignee_id)
        await self._store.update("incidents", incident_id, {"assigned_to": assignee_id or None})
        logger.info("incident_assigned", id=incident_id, assignee=assignee_id, actor=actor_id)
        return await self.get_incident_with_context(incident_id)

    # --- reads ---

    async def get_incident(self, incident_id: str) -> Incident:
        return Incident.model_validate(await self._store.get_by_id("incidents", incident_id))

    async def get_incident_with_context(self, incident_id: str) -> EnrichedIncident:
        incident = await self.get_incident(incident_id)
        return (await self._enrich([incident]))[0]

    async def snapshot(self) -> list[Incident]:
        """All incidents, newest first. Input for the aggregation engine."""
        rows = await self._store.query("incidents", order_by="-created_at")
        return [Incident.model_validate(row) for row in rows]

    async def list_incidents(self, flt: IncidentFilter | None = None) -> list[EnrichedIncident]:
        """Incidents newest first, filtered by search text, status and priority.

        Status and priority are pushed down to the store as equality
        predicates; the free-text search runs here.
        """
        flt = flt or IncidentFilter()
        predicate = {}
        if flt.status:
            predicate["status"] = _validate_status(flt.status)
        if flt.priority:
            predicate["priority"] = _validate_priority(flt.priority)

        rows = await self._store.query("incidents", predicate, order_by="-created_at")
        incidents = [Incident.model_validate(row) for row in rows]
        return await self._enrich([i for i in incidents if matches_filter(i, flt)])

    async def list_updates(self, incident_id: str) -> list[EnrichedIncidentUpdate]:
        """Timeline entries for an incident, newest first."""
        rows = await self._store.query("updates", {"incident_id": incident_id}, order_by="-created_at")
        updates = [IncidentUpdate.model_validate(row) for row in rows]
        summaries = await self._account_summaries(u.user_id for u in updates)
        return [
            EnrichedIncidentUpdate(**u.model_dump(), user=summaries.get(u.user_id))
            for u in updates
        ]

    # --- enrichment ---

    async def _account_summaries(self, account_ids: Iterable[Optional[str]]) -> dict[str, AccountSummary]:
        """One batched lookup for every distinct account referenced."""
        wanted = {a for a in account_ids if a}
        if not wanted:
            return {}
        rows = await self._store.query("accounts", {"id": sorted(wanted)})
        return {
            row["id"]: AccountSummary(full_name=row["full_name"], email=row["email"])
            for row in rows
        }

    async def _enrich(self, incidents: list[Incident]) -> list[EnrichedIncident]:
        summaries = await self._account_summaries(
            ref for i in incidents for ref in (i.reporter_id, i.assigned_to)
        )
        return [
            EnrichedIncident(
                **i.model_dump(),
                reporter=summaries.get(i.reporter_id),
                assigned=summaries.get(i.assigned_to) if i.assigned_to else None,
            )
            for i in incidents
        ]
