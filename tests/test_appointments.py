from datetime import timedelta

import pytest

from core.database import utcnow
from models.appointment import ReminderStatus, ReminderType
from models.user import UserRole
from repositories.appointment import AppointmentReminderRepository
from repositories.content import SettingRepository
from services.settings_service import APPOINTMENTS_ENABLED


def slot_times(days=3, minutes=30):
    start = (utcnow() + timedelta(days=days)).replace(microsecond=0)
    return {"startTime": start.isoformat(), "endTime": (start + timedelta(minutes=minutes)).isoformat()}


@pytest.fixture
async def people(make_user):
    return {
        "doctor": await make_user(role=UserRole.DOCTOR, first_name="Giulia"),
        "patient": await make_user(),
        "other": await make_user(),
    }


async def create_slot(client, login, doctor, **times):
    await login(doctor)
    response = await client.post("/api/appointments", json={**slot_times(**times), "title": "Controllo"})
    assert response.status_code == 201, response.text
    return response.json()


async def test_patient_cannot_publish_slots(client, login, people):
    await login(people["patient"])
    response = await client.post("/api/appointments", json=slot_times())
    assert response.status_code == 403


async def test_slot_validation(client, login, people):
    await login(people["doctor"])
    times = slot_times()
    response = await client.post(
        "/api/appointments",
        json={"startTime": times["endTime"], "endTime": times["startTime"]},
    )
    assert response.status_code == 400

    await client.post("/api/appointments", json=times)
    overlap = await client.post("/api/appointments", json=times)
    assert overlap.status_code == 409


async def test_booking_flow(client, db, login, people):
    slot = await create_slot(client, login, people["doctor"])
    assert slot["status"] == "available"
    assert slot["patientId"] is None

    await login(people["patient"])
    available = (await client.get("/api/appointments", params={"status": "available"})).json()["appointments"]
    assert [a["id"] for a in available] == [slot["id"]]

    booked = await client.post(f"/api/appointments/{slot['id']}/book", json={"notes": "Mal di testa"})
    assert booked.status_code == 200
    body = booked.json()
    assert body["status"] == "booked"
    assert body["patientId"] == people["patient"].id
    assert body["videoRoomName"] == f"appointment-{slot['id']}"

    reminders = await AppointmentReminderRepository(db).list_for_appointment(slot["id"])
    assert [r.reminder_type for r in reminders] == [ReminderType.REMINDER_24H, ReminderType.REMINDER_2H]

    mine = (await client.get("/api/appointments")).json()["appointments"]
    assert [a["id"] for a in mine] == [slot["id"]]

    await login(people["other"])
    again = await client.post(f"/api/appointments/{slot['id']}/book", json={})
    assert again.status_code == 409
    assert (await client.get(f"/api/appointments/{slot['id']}")).status_code == 403


async def test_short_notice_booking_skips_past_reminders(client, db, login, people):
    await login(people["doctor"])
    start = (utcnow() + timedelta(hours=5)).replace(microsecond=0)
    slot = (await client.post(
        "/api/appointments",
        json={"startTime": start.isoformat(), "endTime": (start + timedelta(minutes=20)).isoformat()},
    )).json()

    await login(people["patient"])
    await client.post(f"/api/appointments/{slot['id']}/book", json={})

    reminders = await AppointmentReminderRepository(db).list_for_appointment(slot["id"])
    assert [r.reminder_type for r in reminders] == [ReminderType.REMINDER_2H]


async def test_doctor_cannot_book_own_slot(client, login, people):
    slot = await create_slot(client, login, people["doctor"])
    response = await client.post(f"/api/appointments/{slot['id']}/book", json={})
    assert response.status_code == 400


async def test_status_transitions(client, db, login, people):
    slot = await create_slot(client, login, people["doctor"])
    await login(people["patient"])
    await client.post(f"/api/appointments/{slot['id']}/book", json={})

    confirm = await client.put(f"/api/appointments/{slot['id']}/status", json={"status": "confirmed"})
    assert confirm.status_code == 403

    no_reason = await client.put(f"/api/appointments/{slot['id']}/status", json={"status": "cancelled"})
    assert no_reason.status_code == 400

    await login(people["doctor"])
    confirm = await client.put(f"/api/appointments/{slot['id']}/status", json={"status": "confirmed"})
    assert confirm.json()["status"] == "confirmed"

    skip_ahead = await client.put(f"/api/appointments/{slot['id']}/status", json={"status": "booked"})
    assert skip_ahead.status_code == 400

    await login(people["patient"])
    cancelled = await client.put(
        f"/api/appointments/{slot['id']}/status",
        json={"status": "cancelled", "reason": "  Imprevisto  "},
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["cancellationReason"] == "Imprevisto"

    reminders = await AppointmentReminderRepository(db).list_for_appointment(slot["id"])
    assert {r.status for r in reminders} == {ReminderStatus.SKIPPED}


async def test_delete_slot(client, login, people):
    slot = await create_slot(client, login, people["doctor"])
    booked_slot = await create_slot(client, login, people["doctor"], days=4)

    await login(people["patient"])
    await client.post(f"/api/appointments/{booked_slot['id']}/book", json={})

    await login(people["doctor"])
    assert (await client.delete(f"/api/appointments/{slot['id']}")).status_code == 200
    assert (await client.delete(f"/api/appointments/{booked_slot['id']}")).status_code == 409
    assert (await client.get(f"/api/appointments/{slot['id']}")).status_code == 404


async def test_appointments_feature_flag(client, db):
    assert (await client.get("/api/settings/appointments-enabled")).json() == {"enabled": True}

    await SettingRepository(db).upsert(APPOINTMENTS_ENABLED, "false")
    assert (await client.get("/api/settings/appointments-enabled")).json() == {"enabled": False}
