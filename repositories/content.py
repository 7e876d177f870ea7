import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.content import ContentPage, PagePlacement, Setting
from repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ContentPageRepository(BaseRepository[ContentPage, None, None]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(ContentPage, db_session)

    async def list_published(self, placement: Optional[PagePlacement] = None) -> List[ContentPage]:
        query = select(ContentPage).where(ContentPage.is_published.is_(True))
        if placement:
            query = query.where(ContentPage.placement == placement)
        result = await self.db.execute(query.order_by(ContentPage.sort_order, ContentPage.title))
        return list(result.scalars().all())

    async def list_all(self) -> List[ContentPage]:
        result = await self.db.execute(select(ContentPage).order_by(ContentPage.sort_order, ContentPage.title))
        return list(result.scalars().all())

    async def get_by_slug(self, slug: str) -> Optional[ContentPage]:
        return await self.get_by(slug=slug)


class SettingRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get(self, key: str) -> Optional[Setting]:
        return await self.db_session.get(Setting, key)

    async def list_all(self) -> List[Setting]:
        result = await self.db_session.execute(select(Setting).order_by(Setting.key))
        return list(result.scalars().all())

    async def upsert(
        self,
        key: str,
        value: Optional[str],
        description: Optional[str] = None,
        is_secret: Optional[bool] = None,
    ) -> Setting:
        setting = await self.get(key)
        if setting is None:
            setting = Setting(key=key)
            self.db_session.add(setting)
        setting.value = value
        if description is not None:
            setting.description = description
        if is_secret is not None:
            setting.is_secret = is_secret
        try:
            await self.db_session.commit()
            await self.db_session.refresh(setting)
        except Exception as e:
            await self.db_session.rollback()
            logger.error(f"Error saving setting {key}: {e}")
            raise
        return setting
