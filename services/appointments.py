"""
Telemedicine appointment lifecycle.

Doctors publish ``available`` slots, patients claim them, and the status then
moves booked -> confirmed -> completed, with cancellation possible from either
booked or confirmed.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import utcnow, as_utc
from core.logging import get_logger
from models.appointment import (
    Appointment,
    AppointmentReminder,
    AppointmentStatus,
    AppointmentType,
    ReminderChannel,
    ReminderType,
)
from models.user import User
from repositories.appointment import AppointmentRepository, AppointmentReminderRepository

logger = get_logger(__name__)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.BOOKED: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
}

REMINDER_LEADS = (
    (ReminderType.REMINDER_24H, timedelta(hours=24)),
    (ReminderType.REMINDER_2H, timedelta(hours=2)),
)

VIDEO_ROOM_PREFIX = "appointment-"


class AppointmentError(Exception):
    status_code = 400


class AppointmentNotFoundError(AppointmentError):
    status_code = 404


class AppointmentForbiddenError(AppointmentError):
    status_code = 403


class AppointmentConflictError(AppointmentError):
    status_code = 409


class InvalidTransitionError(AppointmentError):
    status_code = 400


def video_room_url(appointment: Appointment) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/video/{appointment.room_name}"


def appointment_id_from_room(room_name: str) -> Optional[int]:
    if not room_name or not room_name.startswith(VIDEO_ROOM_PREFIX):
        return None
    suffix = room_name[len(VIDEO_ROOM_PREFIX):]
    return int(suffix) if suffix.isdigit() else None


def build_reminders(
    appointment: Appointment,
    now: datetime,
    channel: ReminderChannel = ReminderChannel.WHATSAPP,
) -> List[AppointmentReminder]:
    """24h and 2h reminders, dropping those whose send time has already passed."""
    start = as_utc(appointment.start_time)
    reminders = []
    for reminder_type, lead in REMINDER_LEADS:
        scheduled_for = start - lead
        if scheduled_for > now:
            reminders.append(
                AppointmentReminder(
                    appointment_id=appointment.id,
                    reminder_type=reminder_type,
                    channel=channel,
                    scheduled_for=scheduled_for,
                )
            )
    return reminders


def is_participant(appointment: Appointment, user: User) -> bool:
    return user.id in (appointment.doctor_id, appointment.patient_id)


class AppointmentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.appointments = AppointmentRepository(db)
        self.reminders = AppointmentReminderRepository(db)

    async def get(self, appointment_id: int) -> Appointment:
        appointment = await self.appointments.get(appointment_id)
        if not appointment:
            raise AppointmentNotFoundError("Appuntamento non trovato")
        return appointment

    async def create_slot(
        self,
        doctor: User,
        start_time: datetime,
        end_time: datetime,
        title: Optional[str] = None,
        description: Optional[str] = None,
        appointment_type: AppointmentType = AppointmentType.VIDEO,
    ) -> Appointment:
        start_time, end_time = as_utc(start_time), as_utc(end_time)
        if end_time <= start_time:
            raise AppointmentError("L'orario di fine deve essere successivo all'inizio")
        if await self.appointments.has_overlap(doctor.id, start_time, end_time):
            raise AppointmentConflictError("Lo slot si sovrappone a un altro appuntamento")

        appointment = await self.appointments.create({
            "doctor_id": doctor.id,
            "start_time": start_time,
            "end_time": end_time,
            "title": title or "Teleconsulto",
            "description": description,
            "type": appointment_type,
            "status": AppointmentStatus.AVAILABLE,
        })
        logger.info("Appointment slot created", appointment_id=appointment.id, doctor_id=doctor.id)
        return appointment

    async def book(self, appointment_id: int, patient: User, notes: Optional[str] = None) -> Appointment:
        appointment = await self.get(appointment_id)
        if appointment.doctor_id == patient.id:
            raise AppointmentError("Non puoi prenotare un tuo slot")

        now = utcnow()
        if not await self.appointments.claim(appointment_id, patient.id, notes, now):
            raise AppointmentConflictError("Slot non più disponibile")

        appointment = await self.appointments.refresh(appointment)
        reminders = build_reminders(appointment, now)
        if reminders:
            await self.reminders.create_many(reminders)

        logger.info(
            "Appointment booked",
            appointment_id=appointment.id,
            patient_id=patient.id,
            reminders=len(reminders),
        )
        return appointment

    async def change_status(
        self,
        appointment_id: int,
        user: User,
        new_status: AppointmentStatus,
        reason: Optional[str] = None,
    ) -> Appointment:
        appointment = await self.get(appointment_id)

        is_doctor = user.id == appointment.doctor_id or user.is_admin
        is_patient = user.id == appointment.patient_id
        if not (is_doctor or is_patient):
            raise AppointmentForbiddenError("Non autorizzato")
        if not is_doctor and new_status != AppointmentStatus.CANCELLED:
            raise AppointmentForbiddenError("Il paziente può solo annullare l'appuntamento")

        if new_status not in ALLOWED_TRANSITIONS.get(appointment.status, set()):
            raise InvalidTransitionError(
                f"Transizione non valida: {appointment.status.value} -> {new_status.value}"
            )

        changes = {"status": new_status}
        if new_status == AppointmentStatus.CANCELLED:
            if not reason or not reason.strip():
                raise AppointmentError("Motivo della cancellazione obbligatorio")
            changes["cancellation_reason"] = reason.strip()

        appointment = await self.appointments.update(appointment, changes)

        if new_status == AppointmentStatus.CANCELLED:
            skipped = await self.reminders.skip_pending(appointment.id, "Appointment cancelled")
            logger.info("Appointment cancelled", appointment_id=appointment.id, reminders_skipped=skipped)
        else:
            logger.info("Appointment status changed", appointment_id=appointment.id, status=new_status.value)
        return appointment

    async def delete_slot(self, appointment_id: int, user: User) -> None:
        appointment = await self.get(appointment_id)
        if appointment.doctor_id != user.id and not user.is_admin:
            raise AppointmentForbiddenError("Non autorizzato")
        if appointment.status != AppointmentStatus.AVAILABLE or appointment.patient_id is not None:
            raise AppointmentConflictError("Impossibile eliminare un appuntamento prenotato")
        await self.appointments.delete(appointment.id)

    async def complete_from_room(self, room_name: str) -> Optional[Appointment]:
        """Room ended: a confirmed appointment in that room is completed."""
        appointment_id = appointment_id_from_room(room_name)
        if appointment_id is None:
            return None
        appointment = await self.appointments.get(appointment_id)
        if not appointment or appointment.status != AppointmentStatus.CONFIRMED:
            return None
        appointment = await self.appointments.update(appointment, {"status": AppointmentStatus.COMPLETED})
        logger.info("Appointment completed on room end", appointment_id=appointment.id)
        return appointment
