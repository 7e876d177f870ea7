import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from models.prohmed import ProhmedAccessType, ProhmedCode, ProhmedCodeSource, ProhmedCodeStatus
from services.helpers import generate_random_string

logger = logging.getLogger(__name__)

CODE_PREFIX = "PROHMED"


def new_prohmed_code() -> str:
    return f"{CODE_PREFIX}-{generate_random_string(4)}-{generate_random_string(4)}"


class ProhmedCodeRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get_by_code(self, code: str) -> Optional[ProhmedCode]:
        result = await self.db_session.execute(
            select(ProhmedCode).where(ProhmedCode.code == code.strip().upper())
        )
        return result.scalar_one_or_none()

    async def list_codes(
        self,
        status: Optional[ProhmedCodeStatus] = None,
        skip: int = 0,
        limit: int = 200,
    ) -> List[ProhmedCode]:
        query = select(ProhmedCode)
        if status:
            query = query.where(ProhmedCode.status == status)
        result = await self.db_session.execute(
            query.order_by(ProhmedCode.created_at.desc(), ProhmedCode.id.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def create_batch(
        self,
        count: int,
        access_type: ProhmedAccessType,
        source: ProhmedCodeSource,
        expires_at: Optional[datetime],
    ) -> List[ProhmedCode]:
        """Insert ``count`` fresh codes; a collision regenerates the whole batch."""
        for _ in range(3):
            codes = {new_prohmed_code() for _ in range(count)}
            while len(codes) < count:
                codes.add(new_prohmed_code())
            rows = [
                ProhmedCode(code=code, access_type=access_type, source=source, expires_at=expires_at)
                for code in codes
            ]
            self.db_session.add_all(rows)
            try:
                await self.db_session.commit()
            except IntegrityError:
                await self.db_session.rollback()
                logger.warning("Prohmed code collision, regenerating batch")
                continue
            for row in rows:
                await self.db_session.refresh(row)
            return rows
        raise RuntimeError("Could not generate unique Prohmed codes")

    async def mark_expired(self, code: ProhmedCode) -> None:
        code.status = ProhmedCodeStatus.EXPIRED
        await self.db_session.commit()

    async def redeem(self, code: ProhmedCode, user_id: int, now: datetime) -> bool:
        """Atomically redeem an active code. Returns False when another request got there first."""
        result = await self.db_session.execute(
            update(ProhmedCode)
            .where(ProhmedCode.id == code.id, ProhmedCode.status == ProhmedCodeStatus.ACTIVE)
            .values(status=ProhmedCodeStatus.REDEEMED, user_id=user_id, redeemed_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db_session.commit()
        if result.rowcount == 1:
            await self.db_session.refresh(code)
            return True
        return False
