"""
Web Push delivery via pywebpush (VAPID).
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from pywebpush import webpush, WebPushException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.logging import get_logger
from models.notification import PushSubscription
from repositories.notification import PushSubscriptionRepository

logger = get_logger(__name__)

# Push services answer these when the subscription no longer exists
GONE_STATUS_CODES = (404, 410)


@dataclass
class PushBatchResult:
    sent: int = 0
    failed: int = 0
    removed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"sent": self.sent, "failed": self.failed}


def build_payload(title: str, body: str, url: Optional[str] = None, **data: Any) -> Dict[str, Any]:
    """Payload read by the service worker; ``data.url`` is opened on click."""
    if url:
        data["url"] = url
    return {
        "title": title,
        "body": body,
        "icon": "/icon-192.png",
        "badge": "/badge-72.png",
        "data": data,
    }


class PushService:
    """Sends notifications to browser push subscriptions."""

    def __init__(self):
        self.public_key = settings.VAPID_PUBLIC_KEY
        self.private_key = settings.VAPID_PRIVATE_KEY
        self.subject = settings.VAPID_SUBJECT

        if not (self.public_key and self.private_key):
            logger.warning("VAPID keys not configured, web push disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.public_key and self.private_key)

    def send(self, subscription: PushSubscription, payload: Dict[str, Any]) -> Optional[int]:
        """
        Deliver one notification.

        Returns None on success, otherwise the HTTP status reported by the
        push service (0 when there was no response at all).
        """
        try:
            webpush(
                subscription_info=subscription.to_subscription_info(),
                data=json.dumps(payload),
                vapid_private_key=self.private_key,
                vapid_claims={"sub": self.subject},
            )
            return None
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else 0
            logger.warning(
                "Push delivery failed",
                subscription_id=subscription.id,
                status_code=status_code,
                error=str(e),
            )
            return status_code

    async def send_many(
        self,
        db: AsyncSession,
        subscriptions: Iterable[PushSubscription],
        payload: Dict[str, Any],
    ) -> PushBatchResult:
        """Fan out a payload; subscriptions that are gone are deleted."""
        result = PushBatchResult()
        if not self.is_configured:
            return result

        expired_ids = []
        for subscription in subscriptions:
            # webpush is a blocking HTTP call
            status_code = await run_in_threadpool(self.send, subscription, payload)
            if status_code is None:
                result.sent += 1
                continue
            result.failed += 1
            if status_code in GONE_STATUS_CODES:
                expired_ids.append(subscription.id)

        if expired_ids:
            await PushSubscriptionRepository(db).delete_many(expired_ids)
            result.removed = len(expired_ids)
            logger.info("Removed expired push subscriptions", count=len(expired_ids))

        return result

    async def send_to_users(self, db: AsyncSession, user_ids: Iterable[int], payload: Dict[str, Any]) -> PushBatchResult:
        subscriptions = await PushSubscriptionRepository(db).list_for_users(list(user_ids))
        return await self.send_many(db, subscriptions, payload)


push_service = PushService()
