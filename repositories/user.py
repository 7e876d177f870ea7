from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional, List, Dict, Any
import logging
from datetime import timedelta

from core.database import utcnow, as_utc
from models.user import User, DoctorPatientLink, DoctorLinkingCode, UserRole
from services.helpers import generate_random_string

logger = logging.getLogger(__name__)

LINKING_CODE_TTL = timedelta(days=7)


class UserRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def create_user(self, user_data: Dict[str, Any]) -> User:
        try:
            new_user = User(**user_data)
            self.db_session.add(new_user)
            await self.db_session.commit()
            await self.db_session.refresh(new_user)
            return new_user
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in create_user: {str(e)}")
            raise

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        return await self.db_session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db_session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def update_user(self, user: User, changes: Dict[str, Any]) -> User:
        try:
            for field, value in changes.items():
                setattr(user, field, value)
            await self.db_session.commit()
            await self.db_session.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error updating user {user.id}: {str(e)}")
            raise

    async def list_users(self, search: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[User]:
        query = select(User)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(User.email).like(pattern),
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                )
            )
        query = query.order_by(User.id).offset(skip).limit(limit)
        result = await self.db_session.execute(query)
        return list(result.scalars().all())

    async def get_active_user_ids(self) -> List[int]:
        result = await self.db_session.execute(select(User.id).where(User.is_active.is_(True)))
        return list(result.scalars().all())

    # Doctor / patient links

    async def create_linking_code(self, doctor_id: int) -> DoctorLinkingCode:
        code = DoctorLinkingCode(
            doctor_id=doctor_id,
            code=generate_random_string(8),
            expires_at=utcnow() + LINKING_CODE_TTL,
        )
        self.db_session.add(code)
        await self.db_session.commit()
        await self.db_session.refresh(code)
        return code

    async def get_valid_linking_code(self, code: str) -> Optional[DoctorLinkingCode]:
        result = await self.db_session.execute(
            select(DoctorLinkingCode).where(DoctorLinkingCode.code == code.strip().upper())
        )
        linking_code = result.scalar_one_or_none()
        if not linking_code or as_utc(linking_code.expires_at) < utcnow():
            return None
        return linking_code

    async def link_patient(self, doctor_id: int, patient_id: int) -> DoctorPatientLink:
        result = await self.db_session.execute(
            select(DoctorPatientLink).where(
                DoctorPatientLink.doctor_id == doctor_id,
                DoctorPatientLink.patient_id == patient_id,
            )
        )
        link = result.scalar_one_or_none()
        if link:
            return link

        link = DoctorPatientLink(doctor_id=doctor_id, patient_id=patient_id)
        self.db_session.add(link)
        await self.db_session.commit()
        await self.db_session.refresh(link)
        logger.info(f"Linked patient {patient_id} to doctor {doctor_id}")
        return link

    async def get_patients_of_doctor(self, doctor_id: int) -> List[User]:
        result = await self.db_session.execute(
            select(User)
            .join(DoctorPatientLink, DoctorPatientLink.patient_id == User.id)
            .where(DoctorPatientLink.doctor_id == doctor_id)
            .order_by(User.last_name, User.first_name)
        )
        return list(result.scalars().all())

    async def get_doctor_ids_for_patient(self, patient_id: int) -> List[int]:
        result = await self.db_session.execute(
            select(DoctorPatientLink.doctor_id)
            .join(User, User.id == DoctorPatientLink.doctor_id)
            .where(
                DoctorPatientLink.patient_id == patient_id,
                User.role == UserRole.DOCTOR,
                User.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    async def is_linked(self, doctor_id: int, patient_id: int) -> bool:
        result = await self.db_session.execute(
            select(DoctorPatientLink.id).where(
                DoctorPatientLink.doctor_id == doctor_id,
                DoctorPatientLink.patient_id == patient_id,
            )
        )
        return result.scalar_one_or_none() is not None
