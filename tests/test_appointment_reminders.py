from datetime import datetime, timedelta, timezone

from models.appointment import (
    Appointment,
    AppointmentReminder,
    AppointmentStatus,
    ReminderChannel,
    ReminderStatus,
    ReminderType,
)
from models.user import UserRole
from repositories.appointment import AppointmentReminderRepository
from services.appointment_reminders import format_reminder_message, send_pending_reminders
from services.appointments import build_reminders
from services.messaging_service import MessageResult, messaging_service

NOW = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)


async def booked_appointment(db, make_user, status=AppointmentStatus.BOOKED, **patient_fields):
    doctor = await make_user(role=UserRole.DOCTOR)
    patient = await make_user(**patient_fields)
    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=patient.id,
        start_time=NOW + timedelta(hours=1),
        end_time=NOW + timedelta(hours=1, minutes=30),
        title="Teleconsulto",
        status=status,
    )
    db.add(appointment)
    await db.commit()
    appointment.video_room_name = f"appointment-{appointment.id}"
    await db.commit()
    return appointment, patient


async def add_reminder(db, appointment, channel=ReminderChannel.WHATSAPP, lead=timedelta(hours=2)):
    reminder = AppointmentReminder(
        appointment_id=appointment.id,
        reminder_type=ReminderType.REMINDER_2H,
        channel=channel,
        scheduled_for=appointment.start_time - lead,
    )
    db.add(reminder)
    await db.commit()
    return reminder


WHATSAPP_ON = {"whatsapp_number": "+393331112222", "whatsapp_notifications_enabled": True}


def test_build_reminders_drops_past_leads():
    appointment = Appointment(id=1, start_time=NOW + timedelta(hours=30))
    assert [r.reminder_type for r in build_reminders(appointment, NOW)] == [
        ReminderType.REMINDER_24H,
        ReminderType.REMINDER_2H,
    ]
    appointment.start_time = NOW + timedelta(hours=1)
    assert build_reminders(appointment, NOW) == []


def test_reminder_message():
    appointment = Appointment(id=5, start_time=NOW, video_room_name="appointment-5")
    reminder = AppointmentReminder(reminder_type=ReminderType.REMINDER_24H)
    message = format_reminder_message(reminder, appointment)
    assert "Appuntamento tra 24 ore" in message
    assert "Data: 10/06/2025" in message
    # Europe/Rome is UTC+2 in June
    assert "Ora: 14:00" in message
    assert message.endswith("/video/appointment-5")


async def test_nothing_due(db):
    assert await send_pending_reminders(db, now=NOW) == {"success": True, "remindersSent": 0, "errors": []}


async def test_due_reminder_is_sent(db, make_user, whatsapp_outbox):
    appointment, patient = await booked_appointment(db, make_user, **WHATSAPP_ON)
    reminder = await add_reminder(db, appointment)

    result = await send_pending_reminders(db, now=NOW)

    assert result == {"success": True, "remindersSent": 1, "errors": []}
    assert whatsapp_outbox[0][0] == "+393331112222"
    await db.refresh(reminder)
    assert reminder.status == ReminderStatus.SENT
    assert reminder.message_sid == "SM0001"
    assert reminder.sent_at is not None

    # already sent reminders are not picked up again
    assert (await send_pending_reminders(db, now=NOW))["remindersSent"] == 0


async def test_future_reminder_waits(db, make_user, whatsapp_outbox):
    appointment, _ = await booked_appointment(db, make_user, **WHATSAPP_ON)
    await add_reminder(db, appointment, lead=timedelta(minutes=30))

    assert (await send_pending_reminders(db, now=NOW))["remindersSent"] == 0
    assert whatsapp_outbox == []


async def test_reminder_skipped_without_number(db, make_user, whatsapp_outbox):
    appointment, _ = await booked_appointment(db, make_user)
    reminder = await add_reminder(db, appointment)

    result = await send_pending_reminders(db, now=NOW)

    assert result["remindersSent"] == 0
    assert whatsapp_outbox == []
    await db.refresh(reminder)
    assert reminder.status == ReminderStatus.SKIPPED
    assert reminder.error == "No phone number"


async def test_email_channel_skipped(db, make_user):
    appointment, _ = await booked_appointment(db, make_user, **WHATSAPP_ON)
    reminder = await add_reminder(db, appointment, channel=ReminderChannel.EMAIL)

    await send_pending_reminders(db, now=NOW)

    await db.refresh(reminder)
    assert reminder.error == "Channel is email"


async def test_cancelled_appointment_not_reminded(db, make_user, whatsapp_outbox):
    appointment, _ = await booked_appointment(db, make_user, status=AppointmentStatus.CANCELLED, **WHATSAPP_ON)
    await add_reminder(db, appointment)

    assert (await send_pending_reminders(db, now=NOW))["remindersSent"] == 0
    assert whatsapp_outbox == []


async def test_failed_send_is_reported(db, make_user, monkeypatch):
    async def failing_send(to_number, message):
        return MessageResult(success=False, error="63016")

    monkeypatch.setattr(messaging_service, "send_whatsapp", failing_send)
    appointment, _ = await booked_appointment(db, make_user, **WHATSAPP_ON)
    reminder = await add_reminder(db, appointment)

    result = await send_pending_reminders(db, now=NOW)

    assert result["success"] is False
    assert result["errors"] == [{"reminderId": reminder.id, "error": "WhatsApp send failed: 63016"}]
    pending = await AppointmentReminderRepository(db).list_for_appointment(appointment.id)
    assert pending[0].status == ReminderStatus.FAILED
