"""Incident routes: reporting, listing, status changes, assignment and timeline."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from ...dependencies import current_account_id, get_attachment_storage, get_incident_service
from ...engine.incident_service import IncidentService
from ...schemas import (
    EnrichedIncident,
    EnrichedIncidentUpdate,
    Incident,
    IncidentFilter,
    IncidentPriority,
    IncidentUpdate,
    NewIncident,
)
from ...storage import LocalAttachmentStorage, evidence_path, image_extension

router = APIRouter(prefix="/incidents", tags=["incidents"])


# --- Request bodies ---

class CreateIncidentRequest(BaseModel):
    title: str = Field(max_length=255)
    description: str = Field(max_length=10000)
    category: str = Field(max_length=100)
    location: str = Field(max_length=255)
    priority: IncidentPriority = "medium"
    evidence_urls: list[str] = Field(default_factory=list, max_length=20)


class UpdateStatusRequest(BaseModel):
    new_status: str


class AssignRequest(BaseModel):
    assignee_id: Optional[str] = None


class AddCommentRequest(BaseModel):
    content: str = Field(max_length=5000)


class EvidenceUploadResponse(BaseModel):
    evidence_urls: list[str]


def _filter_value(value: Optional[str]) -> Optional[str]:
    # The dashboard sends "all" for an unset dropdown
    if value is None or value == "" or value == "all":
        return None
    return value


# --- Endpoints ---

@router.get("/", response_model=list[EnrichedIncident])
async def list_incidents(
    search: Optional[str] = Query(None, max_length=200),
    status: Optional[str] = None,
    priority: Optional[str] = None,
    account_id: str = Depends(current_account_id),
    service: IncidentService = Depends(get_incident_service),
):
    """List incidents newest first, optionally filtered."""
    return await service.list_incidents(IncidentFilter(
        search=search or None,
        status=_filter_value(status),
        priority=_filter_value(priority),
    ))


@router.post("/", response_model=Incident, status_code=201)
async def create_incident(
    body: CreateIncidentRequest,
    account_id: str = Depends(current_account_id),
    service: IncidentService = Depends(get_incident_service),
):
    """Report a new incident as the authenticated account."""
    return await service.create_incident(NewIncident(**body.model_dump()), account_id)


@router.post("/evidence", response_model=EvidenceUploadResponse, status_code=201)
async def upload_evidence(
    files: list[UploadFile] = File(...),
    account_id: str = Depends(current_account_id),
    storage: LocalAttachmentStorage = Depends(get_attachment_storage),
):
    """Store evidence images and return their locators, in upload order."""
    # Reject the whole request before anything is written
    for upload in files:
        image_extension(upload.filename or "", upload.content_type or "")

    urls = []
    for upload in files:
        data = await upload.read()
        path = evidence_path(account_id, upload.filename or "")
        urls.append(await run_in_threadpool(storage.save, data, path))
    return EvidenceUploadResponse(evidence_urls=urls)


@router.get("/{incident_id}", response_model=EnrichedIncident)
async def get_incident(
    incident_id: str,
    account_id: str = Depends(current_account_id),
    service: IncidentService = Depends(get_incident_service),
):
    """A single incident with reporter and assignee summaries."""
    return await service.get_incident_with_context(incident_id)


@router.patch("/{incident_id}/status", status_code=204)
async def update_incident_status(
    incident_id: str,
    body: UpdateStatusRequest,
    account_id: str = Depends(current_account_id),
    service: IncidentService = Depends(get_incident_service),
):
    """Change the status and record it on the timeline."""
    await service.transition_status(incident_id, body.new_status, account_id)
    return Response(status_code=204)


@router.patch("/{incident_id}/assign", response_model=EnrichedIncident)
async def assign_incident(
    incident_id: str,
    body: AssignRequest,
    account_id: str = Depends(current_account_id),
    service: IncidentService = Depends(get_incident_service),
):
    """Assign the incident to an account, or clear the assignee with null."""
    return await service.assign_incident(incident_id, body.assignee_id, account_id)


@router.get("/{incident_id}/updates", response_model=list[EnrichedIncidentUpdate])
async def list_incident_updates(
    incident_id: str,
    account_id: str = Depends(current_account_id),
    service: IncidentService = Depends(get_incident_service),
):
    """Timeline of status changes and comments, newest first."""
    return await service.list_updates(incident_id)


@router.post("/{incident_id}/updates", response_model=IncidentUpdate, status_code=201)
async def add_incident_comment(
    incident_id: str,
    body: AddCommentRequest,
    account_id: str = Depends(current_account_id),
    service: IncidentService = Depends(get_incident_service),
):
    """Add a comment to the incident timeline."""
    return await service.add_comment(incident_id, body.content, account_id)
