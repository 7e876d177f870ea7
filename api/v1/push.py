"""
Web Push subscription endpoints.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.security import get_current_active_user
from models.user import User
from repositories.notification import PushSubscriptionRepository
from schemas.notification import PushSubscribeRequest, PushUnsubscribeRequest, VapidKeyResponse
from schemas.responses import StandardSuccessResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/vapid-public-key", response_model=VapidKeyResponse)
async def get_vapid_public_key():
    if not settings.VAPID_PUBLIC_KEY:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Push notifications not configured")
    return VapidKeyResponse(public_key=settings.VAPID_PUBLIC_KEY)


@router.post("/subscribe", response_model=StandardSuccessResponse)
async def subscribe(
    payload: PushSubscribeRequest,
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    subscription = await PushSubscriptionRepository(db).upsert(
        user_id=current_user.id,
        endpoint=payload.endpoint,
        p256dh=payload.keys.p256dh,
        auth=payload.keys.auth,
        user_agent=(request.headers.get("user-agent") or "")[:255] or None,
    )
    logger.info(f"Push subscription {subscription.id} saved for user {current_user.id}")
    return StandardSuccessResponse(message="Subscription saved")


@router.post("/unsubscribe", response_model=StandardSuccessResponse)
async def unsubscribe(
    payload: PushUnsubscribeRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    removed = await PushSubscriptionRepository(db).delete_by_endpoint(payload.endpoint, user_id=current_user.id)
    return StandardSuccessResponse(message="Subscription removed", data={"removed": removed})
