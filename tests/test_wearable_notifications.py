from datetime import datetime, timezone

import pytest

from models.triage import UrgencyLevel
from models.user import UserRole
from models.wearable import Severity
from repositories.notification import (
    NotificationRepository,
    ProactiveNotificationRepository,
    PushSubscriptionRepository,
)
from repositories.user import UserRepository
from services.wearable_notifications import (
    BLOOD_PRESSURE,
    TriageAlertEvent,
    WearableAnomalyEvent,
    WearableNotificationService,
    format_whatsapp_message,
)

MEASURED = datetime(2025, 3, 1, 7, 30, tzinfo=timezone.utc)


def bp_event(user_id, severity=Severity.HIGH):
    return WearableAnomalyEvent(
        user_id=user_id,
        reading_type=BLOOD_PRESSURE,
        severity=severity,
        analysis="⚠️ Pressione alta (stadio 2): 165/102 mmHg.",
        measurement_time=MEASURED,
        systolic=165,
        diastolic=102,
        heart_rate=88,
        reading_id=1,
    )


async def subscribe(db, user_id, endpoint):
    return await PushSubscriptionRepository(db).upsert(user_id, endpoint, "p256dh-key", "auth-key")


def test_payload_round_trip_keeps_types():
    event = bp_event(3)
    restored = WearableAnomalyEvent.from_payload(event.to_payload())
    assert restored == event
    assert isinstance(restored.severity, Severity)


def test_whatsapp_message_uses_local_time():
    message = format_whatsapp_message(bp_event(1))
    assert message.startswith("🔴 ALERT IPERTENSIONE")
    assert "Pressione: 165/102 mmHg" in message
    assert "Battiti: 88 bpm" in message
    # 07:30 UTC is 08:30 in Rome in winter
    assert "Rilevato: 01/03/25, 08:30" in message


async def test_alert_goes_to_whatsapp_and_push(db, make_user, whatsapp_outbox, push_outbox):
    user = await make_user(
        whatsapp_number="+393331234567",
        whatsapp_notifications_enabled=True,
        whatsapp_verified=True,
    )
    await subscribe(db, user.id, "https://push.example/a")

    sent = await WearableNotificationService(db).send_anomaly_notification(bp_event(user.id))

    assert sent is True
    assert [to for to, _ in whatsapp_outbox] == ["+393331234567"]
    assert len(push_outbox) == 1
    endpoint, payload = push_outbox[0]
    assert endpoint == "https://push.example/a"
    assert payload["title"] == "⚠️ Alert Pressione Sanguigna"
    assert payload["data"]["url"] == "/wearable"

    inbox = await NotificationRepository(db).list_for_user(user.id)
    assert len(inbox) == 1
    history = await ProactiveNotificationRepository(db).list_for_user(user.id)
    assert history[0].trigger_type == "blood_pressure_alert"


async def test_unverified_whatsapp_gets_push_only(db, make_user, whatsapp_outbox, push_outbox):
    user = await make_user(whatsapp_number="+393331234567", whatsapp_notifications_enabled=True)
    await subscribe(db, user.id, "https://push.example/b")

    assert await WearableNotificationService(db).send_anomaly_notification(bp_event(user.id))
    assert whatsapp_outbox == []
    assert len(push_outbox) == 1


async def test_alerts_are_debounced(db, make_user, push_outbox):
    user = await make_user()
    await subscribe(db, user.id, "https://push.example/c")
    service = WearableNotificationService(db)

    assert await service.send_anomaly_notification(bp_event(user.id)) is True
    assert await service.send_anomaly_notification(bp_event(user.id, Severity.LOW)) is False
    assert len(push_outbox) == 1


async def test_elevated_is_not_pushed(db, make_user, push_outbox, debounce):
    user = await make_user()
    assert await WearableNotificationService(db).send_anomaly_notification(bp_event(user.id, Severity.ELEVATED)) is False
    assert push_outbox == []
    assert debounce == set()


async def test_missing_user(db):
    assert await WearableNotificationService(db).send_anomaly_notification(bp_event(4040)) is False


@pytest.mark.parametrize("urgency,expected", [(UrgencyLevel.EMERGENCY, 1), (UrgencyLevel.HIGH, 1), (UrgencyLevel.MEDIUM, 0)])
async def test_triage_alert_reaches_linked_doctor(db, make_user, push_outbox, urgency, expected):
    patient = await make_user()
    doctor = await make_user(role=UserRole.DOCTOR)
    await UserRepository(db).link_patient(doctor.id, patient.id)
    await subscribe(db, doctor.id, "https://push.example/doctor")

    event = TriageAlertEvent(
        patient_id=patient.id,
        patient_name=patient.full_name,
        urgency_level=urgency,
        reason="Dolore toracico",
        alert_id=7,
    )
    notified = await WearableNotificationService(db).send_triage_alert_notification(event)

    assert notified == expected
    assert len(push_outbox) == expected
    if expected:
        payload = push_outbox[0][1]
        assert payload["data"]["url"] == "/doctor/alert/7"
        assert payload["data"]["patientId"] == patient.id


async def test_triage_alert_without_doctors(db, make_user, push_outbox):
    patient = await make_user()
    event = TriageAlertEvent(
        patient_id=patient.id,
        patient_name=patient.full_name,
        urgency_level=UrgencyLevel.EMERGENCY,
        reason="Dolore toracico",
        alert_id=1,
    )
    assert await WearableNotificationService(db).send_triage_alert_notification(event) == 0
    assert push_outbox == []
