"""
Admin broadcast endpoints: Web Push and in-app notifications.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_admin
from core.database import get_db
from models.user import User
from repositories.notification import NotificationRepository, PushSubscriptionRepository
from repositories.user import UserRepository
from schemas.notification import (
    AdminPushRequest,
    NotificationCreate,
    NotificationCreateResponse,
    PushSendResponse,
)
from services.push_service import push_service, build_payload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/push/send", response_model=PushSendResponse)
async def send_push(
    request: AdminPushRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Push to one user's subscriptions, or to every subscription when no user is given."""
    if not push_service.is_configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Push notifications not configured")

    repo = PushSubscriptionRepository(db)
    if request.user_id is not None:
        subscriptions = await repo.list_for_users([request.user_id])
    else:
        subscriptions = await repo.list_all()

    payload = build_payload(request.title, request.body, url=request.url or "/")
    result = await push_service.send_many(db, subscriptions, payload)
    logger.info(
        f"Admin {admin.id} sent push '{request.title}': sent={result.sent} "
        f"failed={result.failed} removed={result.removed}"
    )
    return PushSendResponse(**result.as_dict())


@router.post("/notifications/create", response_model=NotificationCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_notifications(
    request: NotificationCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """One in-app notification per target: a single user or every active user."""
    users = UserRepository(db)
    if request.target_user_id is not None:
        if not await users.get_user_by_id(request.target_user_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        user_ids = [request.target_user_id]
    else:
        user_ids = await users.get_active_user_ids()

    count = await NotificationRepository(db).create_many(
        user_ids,
        title=request.title,
        message=request.message,
        type=request.type,
        priority=request.priority,
        related_url=request.related_url,
    )
    logger.info(f"Admin {admin.id} created {count} notifications")
    return NotificationCreateResponse(count=count)
