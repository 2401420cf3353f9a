"""Account routes: directory for assignee pickers and own-profile edits."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...dependencies import current_account_id, get_account_service
from ...engine.account_service import AccountService
from ...schemas import Account

router = APIRouter(prefix="/accounts", tags=["accounts"])


class AccountDirectoryEntry(BaseModel):
    id: str
    full_name: str
    email: str


class UpdateProfileRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=255)
    avatar_url: Optional[str] = Field(default=None, max_length=1024)


@router.get("/", response_model=list[AccountDirectoryEntry])
async def list_accounts(
    account_id: str = Depends(current_account_id),
    accounts: AccountService = Depends(get_account_service),
):
    """All accounts, reduced to id, name and email."""
    return [
        AccountDirectoryEntry(id=a.id, full_name=a.full_name, email=a.email)
        for a in await accounts.list_accounts()
    ]


@router.patch("/me", response_model=Account)
async def update_own_profile(
    body: UpdateProfileRequest,
    account_id: str = Depends(current_account_id),
    accounts: AccountService = Depends(get_account_service),
):
    """Update the caller's display name or avatar."""
    return await accounts.update_profile(account_id, body.model_dump(exclude_unset=True))
