import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from models.certificate import UserCertificate
from repositories.base import BaseRepository
from services.helpers import generate_verification_code

logger = logging.getLogger(__name__)

CODE_ATTEMPTS = 5


class CertificateRepository(BaseRepository[UserCertificate, None, None]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(UserCertificate, db_session)

    async def list_for_user(self, user_id: int) -> List[UserCertificate]:
        result = await self.db.execute(
            select(UserCertificate)
            .where(UserCertificate.user_id == user_id)
            .order_by(UserCertificate.issued_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_attempt(self, attempt_id: int) -> Optional[UserCertificate]:
        return await self.get_by(quiz_attempt_id=attempt_id)

    async def get_by_code(self, code: str) -> Optional[UserCertificate]:
        return await self.get_by(verification_code=code.strip().upper())

    async def issue(self, user_id: int, quiz_id: int, attempt_id: int, title: str, score: int) -> UserCertificate:
        """
        Create the certificate for an attempt. A concurrent request for the
        same attempt wins the unique constraint; its row is returned instead.
        """
        for _ in range(CODE_ATTEMPTS):
            certificate = UserCertificate(
                user_id=user_id,
                quiz_id=quiz_id,
                quiz_attempt_id=attempt_id,
                title=title,
                score=score,
                verification_code=generate_verification_code(),
            )
            self.db.add(certificate)
            try:
                await self.db.commit()
                await self.db.refresh(certificate)
                return certificate
            except IntegrityError:
                await self.db.rollback()
                existing = await self.get_by_attempt(attempt_id)
                if existing:
                    return existing
                logger.warning(f"Verification code collision for attempt {attempt_id}, retrying")
        raise RuntimeError("Could not allocate a unique verification code")
