"""Analytics routes: dashboard summary computed from the incident snapshot."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...config import IncidentDeskConfig
from ...dependencies import current_account_id, get_app_config, get_incident_service
from ...engine.aggregation import summarize
from ...engine.incident_service import IncidentService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/summary")
async def get_summary(
    top: Optional[int] = Query(None, ge=1, le=50),
    account_id: str = Depends(current_account_id),
    service: IncidentService = Depends(get_incident_service),
    config: IncidentDeskConfig = Depends(get_app_config),
):
    """Counts by status and priority plus the top categories and locations."""
    incidents = await service.snapshot()
    return summarize(incidents).to_dict(top_n=top or config.top_n)
