import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import utcnow
from models.appointment import (
    Appointment,
    AppointmentReminder,
    AppointmentStatus,
    ReminderStatus,
)
from models.user import User
from repositories.base import BaseRepository

logger = logging.getLogger(__name__)

REMINDABLE_STATUSES = (AppointmentStatus.BOOKED, AppointmentStatus.CONFIRMED)


class AppointmentRepository(BaseRepository[Appointment, None, None]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(Appointment, db_session)

    async def list_available(
        self,
        after: datetime,
        before: Optional[datetime] = None,
        doctor_id: Optional[int] = None,
    ) -> List[Appointment]:
        query = select(Appointment).where(
            Appointment.status == AppointmentStatus.AVAILABLE,
            Appointment.start_time > after,
        )
        if before:
            query = query.where(Appointment.start_time <= before)
        if doctor_id is not None:
            query = query.where(Appointment.doctor_id == doctor_id)
        result = await self.db.execute(query.order_by(Appointment.start_time))
        return list(result.scalars().all())

    async def list_for_user(
        self,
        user_id: int,
        status: Optional[AppointmentStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Appointment]:
        query = select(Appointment).where(
            or_(Appointment.doctor_id == user_id, Appointment.patient_id == user_id)
        )
        if status:
            query = query.where(Appointment.status == status)
        if start:
            query = query.where(Appointment.start_time >= start)
        if end:
            query = query.where(Appointment.start_time <= end)
        result = await self.db.execute(query.order_by(Appointment.start_time))
        return list(result.scalars().all())

    async def has_overlap(self, doctor_id: int, start: datetime, end: datetime) -> bool:
        result = await self.db.execute(
            select(Appointment.id).where(
                Appointment.doctor_id == doctor_id,
                Appointment.status != AppointmentStatus.CANCELLED,
                Appointment.start_time < end,
                Appointment.end_time > start,
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def claim(self, appointment_id: int, patient_id: int, notes: Optional[str], now: datetime) -> bool:
        """Book an open slot in one statement; False when someone else got there first."""
        result = await self.db.execute(
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.status == AppointmentStatus.AVAILABLE,
                Appointment.patient_id.is_(None),
                Appointment.start_time > now,
            )
            .values(
                status=AppointmentStatus.BOOKED,
                patient_id=patient_id,
                notes=notes,
                video_room_name=f"appointment-{appointment_id}",
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def refresh(self, appointment: Appointment) -> Appointment:
        await self.db.refresh(appointment)
        return appointment


class AppointmentReminderRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def create_many(self, reminders: Sequence[AppointmentReminder]) -> None:
        try:
            self.db_session.add_all(list(reminders))
            await self.db_session.commit()
        except Exception as e:
            await self.db_session.rollback()
            logger.error(f"Error creating appointment reminders: {e}")
            raise

    async def list_for_appointment(self, appointment_id: int) -> List[AppointmentReminder]:
        result = await self.db_session.execute(
            select(AppointmentReminder)
            .where(AppointmentReminder.appointment_id == appointment_id)
            .order_by(AppointmentReminder.scheduled_for)
        )
        return list(result.scalars().all())

    async def fetch_due(self, now: datetime) -> List[Tuple[AppointmentReminder, Appointment, User]]:
        """Pending reminders whose time has come, with their appointment and patient."""
        result = await self.db_session.execute(
            select(AppointmentReminder, Appointment, User)
            .join(Appointment, Appointment.id == AppointmentReminder.appointment_id)
            .join(User, User.id == Appointment.patient_id)
            .where(
                AppointmentReminder.status == ReminderStatus.PENDING,
                AppointmentReminder.scheduled_for <= now,
                Appointment.status.in_(REMINDABLE_STATUSES),
            )
            .order_by(AppointmentReminder.scheduled_for)
        )
        return [tuple(row) for row in result.all()]

    async def mark(
        self,
        reminder: AppointmentReminder,
        status: ReminderStatus,
        message_sid: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        reminder.status = status
        reminder.message_sid = message_sid
        reminder.error = error
        if status == ReminderStatus.SENT:
            reminder.sent_at = utcnow()
        await self.db_session.commit()

    async def skip_pending(self, appointment_id: int, reason: str) -> int:
        result = await self.db_session.execute(
            update(AppointmentReminder)
            .where(
                AppointmentReminder.appointment_id == appointment_id,
                AppointmentReminder.status == ReminderStatus.PENDING,
            )
            .values(status=ReminderStatus.SKIPPED, error=reason)
        )
        await self.db_session.commit()
        return result.rowcount
