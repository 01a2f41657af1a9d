from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from portfolio.auth import get_current_user, get_storage
from portfolio.schemas import MessageResponse, NotificationResponse, UserRecord
from portfolio.storage import Storage

router = APIRouter()


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_notifications(user.id)


@router.post("/{notification_id}/read", response_model=MessageResponse)
async def mark_read(
    notification_id: str,
    user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if not await storage.mark_notification_read(notification_id, user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notificação não encontrada")
    return MessageResponse(message="Notificação marcada como lida")
