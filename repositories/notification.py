import logging
from typing import List, Optional, Sequence
from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import utcnow
from models.notification import Notification, PushSubscription, ProactiveNotification

logger = logging.getLogger(__name__)


class NotificationRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def list_for_user(self, user_id: int, limit: int = 50) -> List[Notification]:
        result = await self.db_session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def unread_count(self, user_id: int) -> int:
        result = await self.db_session.execute(
            select(func.count()).select_from(Notification).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def mark_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        notification = await self.db_session.get(Notification, notification_id)
        if not notification or notification.user_id != user_id:
            return None
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await self.db_session.commit()
            await self.db_session.refresh(notification)
        return notification

    async def mark_all_read(self, user_id: int) -> int:
        result = await self.db_session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
        )
        await self.db_session.commit()
        return result.rowcount

    async def create_many(self, user_ids: Sequence[int], **fields) -> int:
        """Insert one notification per user."""
        try:
            for user_id in user_ids:
                self.db_session.add(Notification(user_id=user_id, **fields))
            await self.db_session.commit()
        except Exception as e:
            await self.db_session.rollback()
            logger.error(f"Error creating notifications: {e}")
            raise
        return len(user_ids)


class PushSubscriptionRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def upsert(self, user_id: int, endpoint: str, p256dh: str, auth: str, user_agent: Optional[str] = None) -> PushSubscription:
        """A browser endpoint belongs to whoever subscribed with it last."""
        result = await self.db_session.execute(
            select(PushSubscription).where(PushSubscription.endpoint == endpoint)
        )
        subscription = result.scalar_one_or_none()
        if subscription:
            subscription.user_id = user_id
            subscription.p256dh = p256dh
            subscription.auth = auth
            subscription.user_agent = user_agent
        else:
            subscription = PushSubscription(
                user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth, user_agent=user_agent
            )
            self.db_session.add(subscription)
        await self.db_session.commit()
        await self.db_session.refresh(subscription)
        return subscription

    async def delete_by_endpoint(self, endpoint: str, user_id: Optional[int] = None) -> bool:
        query = delete(PushSubscription).where(PushSubscription.endpoint == endpoint)
        if user_id is not None:
            query = query.where(PushSubscription.user_id == user_id)
        result = await self.db_session.execute(query)
        await self.db_session.commit()
        return result.rowcount > 0

    async def delete_many(self, subscription_ids: Sequence[int]) -> None:
        if not subscription_ids:
            return
        await self.db_session.execute(
            delete(PushSubscription).where(PushSubscription.id.in_(subscription_ids))
        )
        await self.db_session.commit()

    async def list_for_users(self, user_ids: Sequence[int]) -> List[PushSubscription]:
        if not user_ids:
            return []
        result = await self.db_session.execute(
            select(PushSubscription).where(PushSubscription.user_id.in_(user_ids))
        )
        return list(result.scalars().all())

    async def list_all(self) -> List[PushSubscription]:
        result = await self.db_session.execute(select(PushSubscription))
        return list(result.scalars().all())


class ProactiveNotificationRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def create(self, **fields) -> ProactiveNotification:
        record = ProactiveNotification(**fields)
        try:
            self.db_session.add(record)
            await self.db_session.commit()
            await self.db_session.refresh(record)
        except Exception as e:
            await self.db_session.rollback()
            logger.error(f"Error recording proactive notification: {e}")
            raise
        return record

    async def list_for_user(self, user_id: int, limit: int = 50) -> List[ProactiveNotification]:
        result = await self.db_session.execute(
            select(ProactiveNotification)
            .where(ProactiveNotification.user_id == user_id)
            .order_by(ProactiveNotification.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
