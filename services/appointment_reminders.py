"""
WhatsApp reminders for upcoming teleconsultations.

Runs every ten minutes (Celery beat or the in-process scheduler) and works
through the reminders whose send time has come.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.database import utcnow
from core.logging import get_logger
from models.appointment import Appointment, AppointmentReminder, ReminderChannel, ReminderStatus, ReminderType
from models.user import User
from repositories.appointment import AppointmentReminderRepository
from services.appointments import video_room_url
from services.helpers import format_date_it, format_time_it
from services.messaging_service import messaging_service

logger = get_logger(__name__)

LEAD_LABELS = {
    ReminderType.REMINDER_24H: "24 ore",
    ReminderType.REMINDER_2H: "2 ore",
}

WHATSAPP_CHANNELS = (ReminderChannel.WHATSAPP, ReminderChannel.BOTH)


def format_reminder_message(reminder: AppointmentReminder, appointment: Appointment) -> str:
    label = LEAD_LABELS.get(reminder.reminder_type, "breve")
    message = (
        "🔔 Promemoria Teleconsulto\n\n"
        f"Appuntamento tra {label}\n"
        f"Data: {format_date_it(appointment.start_time)}\n"
        f"Ora: {format_time_it(appointment.start_time)}\n\n"
    )
    if appointment.video_room_name:
        message += f"Link: {video_room_url(appointment)}"
    return message


def skip_reason(reminder: AppointmentReminder, patient: User) -> Optional[str]:
    """None when the reminder can go out over WhatsApp."""
    if reminder.channel in WHATSAPP_CHANNELS and patient.whatsapp_number and patient.whatsapp_notifications_enabled:
        return None
    if not patient.whatsapp_number:
        return "No phone number"
    if not patient.whatsapp_notifications_enabled:
        return "WhatsApp notifications disabled"
    return f"Channel is {reminder.channel.value}"


async def send_pending_reminders(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Send due reminders; returns ``{success, remindersSent, errors}``."""
    repo = AppointmentReminderRepository(db)
    errors: List[Dict[str, Any]] = []
    sent = 0

    due = await repo.fetch_due(now or utcnow())
    if not due:
        logger.info("No pending appointment reminders")
        return {"success": True, "remindersSent": 0, "errors": []}

    logger.info("Processing appointment reminders", count=len(due))

    for reminder, appointment, patient in due:
        reason = skip_reason(reminder, patient)
        if reason:
            logger.info("Skipping appointment reminder", reminder_id=reminder.id, reason=reason)
            await repo.mark(reminder, ReminderStatus.SKIPPED, error=reason)
            continue

        result = await messaging_service.send_whatsapp(
            patient.whatsapp_number,
            format_reminder_message(reminder, appointment),
        )
        if result.success:
            await repo.mark(reminder, ReminderStatus.SENT, message_sid=result.sid)
            sent += 1
        else:
            error = f"WhatsApp send failed: {result.error}"
            logger.error("Appointment reminder failed", reminder_id=reminder.id, error=error)
            await repo.mark(reminder, ReminderStatus.FAILED, error=error)
            errors.append({"reminderId": reminder.id, "error": error})

    logger.info("Appointment reminders completed", sent=sent, failed=len(errors))
    return {"success": not errors, "remindersSent": sent, "errors": errors}
