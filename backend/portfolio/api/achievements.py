from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from portfolio.auth import get_current_user, get_optional_user, get_storage, require_admin
from portfolio.schemas import (
    CommentCreate,
    CommentResponse,
    EntityType,
    LikeResponse,
    MessageResponse,
    AchievementCreate,
    AchievementResponse,
    AchievementUpdate,
    UserRecord,
)
from portfolio.services.notifications import notify_admins
from portfolio.storage import Storage

router = APIRouter()

NOT_FOUND = "Conquista não encontrada"


async def _visible_achievement(
    achievement_id: str, storage: Storage, user: Optional[UserRecord]
) -> AchievementResponse:
    """Fetch an achievement, hiding drafts from everyone but admins."""
    achievement = await storage.get_achievement(achievement_id, viewer_id=user.id if user else None)
    if achievement is None or (achievement.status != "published" and not (user and user.is_admin)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return achievement


@router.get("", response_model=List[AchievementResponse])
async def list_achievements(
    include_drafts: bool = False,
    user: Optional[UserRecord] = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
):
    """Published achievements, most recent date first. Admins may ask for drafts too."""
    return await storage.list_achievements(
        viewer_id=user.id if user else None,
        include_drafts=include_drafts and user is not None and user.is_admin,
    )


@router.get("/{achievement_id}", response_model=AchievementResponse)
async def get_achievement(
    achievement_id: str,
    user: Optional[UserRecord] = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
):
    return await _visible_achievement(achievement_id, storage, user)


@router.post("", response_model=AchievementResponse)
async def create_achievement(
    body: AchievementCreate,
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_achievement(body)


@router.put("/{achievement_id}", response_model=AchievementResponse)
async def update_achievement(
    achievement_id: str,
    body: AchievementUpdate,
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    achievement = await storage.update_achievement(achievement_id, body.changes())
    if achievement is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return achievement


@router.delete("/{achievement_id}", response_model=MessageResponse)
async def delete_achievement(
    achievement_id: str,
    _admin: UserRecord = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_achievement(achievement_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return MessageResponse(message="Conquista deletada com sucesso")


@router.post("/{achievement_id}/like", response_model=LikeResponse)
async def toggle_like(
    achievement_id: str,
    user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    achievement = await _visible_achievement(achievement_id, storage, user)
    liked = await storage.toggle_achievement_like(achievement_id, user.id)
    if liked is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    if liked:
        await notify_admins(storage, user, "like", EntityType.ACHIEVEMENT, achievement_id, achievement.title)
    return LikeResponse(liked=liked)


@router.get("/{achievement_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    achievement_id: str,
    user: Optional[UserRecord] = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
):
    await _visible_achievement(achievement_id, storage, user)
    return await storage.list_achievement_comments(achievement_id)


@router.post("/{achievement_id}/comments", response_model=CommentResponse)
async def add_comment(
    achievement_id: str,
    body: CommentCreate,
    user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    achievement = await _visible_achievement(achievement_id, storage, user)
    comment = await storage.add_achievement_comment(achievement_id, user.id, body.content)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    await notify_admins(storage, user, "comment", EntityType.ACHIEVEMENT, achievement_id, achievement.title)
    return comment
