from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_active_user
from models.user import User
from repositories.notification import NotificationRepository
from schemas.notification import NotificationRead, NotificationsResponse, UnreadCountResponse
from schemas.responses import StandardSuccessResponse

router = APIRouter()


@router.get("", response_model=NotificationsResponse)
async def list_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    notifications = await NotificationRepository(db).list_for_user(current_user.id, limit=limit)
    return NotificationsResponse(notifications=notifications)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(count=await NotificationRepository(db).unread_count(current_user.id))


@router.post("/mark-all-read", response_model=StandardSuccessResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await NotificationRepository(db).mark_all_read(current_user.id)
    return StandardSuccessResponse(message="All notifications marked as read", data={"updated": updated})


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationRepository(db).mark_read(notification_id, current_user.id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification
