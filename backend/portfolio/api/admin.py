from typing import List

from fastapi import APIRouter, Depends

from portfolio.auth import get_storage, require_admin
from portfolio.schemas import ContactResponse, UserRecord, UserResponse
from portfolio.storage import Storage

router = APIRouter()


@router.get("/contacts", response_model=List[ContactResponse])
async def list_contacts(
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    """Admin-only: contact form submissions, newest first."""
    return await storage.list_contacts()


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    users = await storage.list_users()
    return [UserResponse.model_validate(u) for u in users]
