"""Pydantic records exchanged between the incident service, the store and the API."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

INCIDENT_STATUSES = ("open", "in_progress", "resolved", "closed")
INCIDENT_PRIORITIES = ("low", "medium", "high", "critical")

UPDATE_STATUS_CHANGE = "status_change"
UPDATE_COMMENT = "comment"

IncidentStatus = Literal["open", "in_progress", "resolved", "closed"]
IncidentPriority = Literal["low", "medium", "high", "critical"]


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", from_attributes=True)

    @field_validator("created_at", "updated_at", "resolved_at", mode="after", check_fields=False)
    @classmethod
    def _utc(cls, v):
        return _as_utc(v)


# ── Accounts ──
class AccountSummary(BaseModel):
    """The only account fields exposed alongside incidents and updates."""
    full_name: str
    email: str


class Account(_Record):
    id: str
    full_name: str
    email: str
    role: str = "security_officer"
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def summary(self) -> AccountSummary:
        return AccountSummary(full_name=self.full_name, email=self.email)


# ── Incidents ──
class NewIncident(BaseModel):
    """Incident creation input. Unknown keys (``status``, ``reporter_id``) are dropped."""
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    description: str = ""
    category: str = ""
    location: str = ""
    priority: str = "medium"
    evidence_urls: list[str] = Field(default_factory=list)


class Incident(_Record):
    id: str
    title: str
    description: str
    status: IncidentStatus = "open"
    priority: IncidentPriority = "medium"
    category: str
    location: str
    reporter_id: str
    assigned_to: Optional[str] = None
    evidence_urls: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None

    @field_validator("evidence_urls", mode="before")
    @classmethod
    def _null_evidence(cls, v):
        return v or []


class EnrichedIncident(Incident):
    reporter: Optional[AccountSummary] = None
    assigned: Optional[AccountSummary] = None


class IncidentFilter(BaseModel):
    search: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None


# ── Timeline ──
class IncidentUpdate(_Record):
    id: str
    incident_id: str
    user_id: str
    update_type: str
    content: str
    created_at: datetime


class EnrichedIncidentUpdate(IncidentUpdate):
    user: Optional[AccountSummary] = None
