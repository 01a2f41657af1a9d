from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.exceptions import RequestValidationError

from portfolio.auth import get_optional_user, get_storage, require_admin
from portfolio.schemas import (
    ExperienceCreate,
    ExperienceResponse,
    ExperienceUpdate,
    MessageResponse,
    UserRecord,
)
from portfolio.schemas.experience import END_BEFORE_START, ends_before_start
from portfolio.storage import Storage

router = APIRouter()

NOT_FOUND = "Experiência não encontrada"


@router.get("", response_model=List[ExperienceResponse])
async def list_experiences(
    include_drafts: bool = False,
    user: Optional[UserRecord] = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
):
    """Published experiences, most recent start date first."""
    return await storage.list_experiences(
        include_drafts=include_drafts and user is not None and user.is_admin
    )


@router.get("/{experience_id}", response_model=ExperienceResponse)
async def get_experience(
    experience_id: str,
    user: Optional[UserRecord] = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
):
    experience = await storage.get_experience(experience_id)
    if experience is None or (experience.status != "published" and not (user and user.is_admin)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return experience


@router.post("", response_model=ExperienceResponse)
async def create_experience(
    body: ExperienceCreate,
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_experience(body)


@router.put("/{experience_id}", response_model=ExperienceResponse)
async def update_experience(
    experience_id: str,
    body: ExperienceUpdate,
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    changes = body.changes()
    if "start_date" in changes or "end_date" in changes:
        current = await storage.get_experience(experience_id)
        if current is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
        start_date = changes.get("start_date", current.start_date)
        end_date = changes.get("end_date", current.end_date)
        if ends_before_start(start_date, end_date):
            field = "endDate" if "end_date" in changes else "startDate"
            raise RequestValidationError([
                {"loc": ("body", field), "msg": f"Value error, {END_BEFORE_START}", "type": "value_error"}
            ])

    experience = await storage.update_experience(experience_id, changes)
    if experience is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return experience


@router.delete("/{experience_id}", response_model=MessageResponse)
async def delete_experience(
    experience_id: str,
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_experience(experience_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return MessageResponse(message="Experiência deletada com sucesso")
