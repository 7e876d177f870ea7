from datetime import timedelta

import pytest
from twilio.request_validator import RequestValidator

from core.config import settings
from core.database import utcnow
from models.appointment import Appointment, AppointmentStatus
from models.user import UserRole
from services.video_rooms import RoomRegistry, room_registry
from services.video_service import video_service

CALLBACK_URL = "https://test/api/video/events"


@pytest.fixture(autouse=True)
def fresh_registry(monkeypatch):
    monkeypatch.setattr(room_registry, "rooms", {})
    monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", None)
    monkeypatch.setattr(settings, "TWILIO_STATUS_CALLBACK_URL", CALLBACK_URL)


@pytest.fixture
def video_configured(monkeypatch):
    monkeypatch.setattr(video_service, "account_sid", "AC" + "0" * 32)
    monkeypatch.setattr(video_service, "api_key_sid", "SK" + "0" * 32)
    monkeypatch.setattr(video_service, "api_key_secret", "secret")


@pytest.fixture
async def consult(db, make_user):
    doctor = await make_user(role=UserRole.DOCTOR)
    patient = await make_user()
    start = utcnow() + timedelta(hours=1)
    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=patient.id,
        start_time=start,
        end_time=start + timedelta(minutes=30),
        status=AppointmentStatus.CONFIRMED,
    )
    db.add(appointment)
    await db.commit()
    return {"doctor": doctor, "patient": patient, "appointment": appointment, "room": f"appointment-{appointment.id}"}


def test_registry_tracks_participants():
    registry = RoomRegistry()
    registry.apply_event("participant-connected", "appointment-1", identity="user-1")
    assert registry.track_subscribed("appointment-1", "user-1", "MT1", "video")
    assert not registry.track_subscribed("appointment-1", "user-1", "MT1", "video")
    registry.apply_event("track-subscribed", "appointment-1", identity="user-1", track_sid="MT2", track_kind="audio")

    snapshot = registry.get("appointment-1").snapshot()
    assert [p["identity"] for p in snapshot["participants"]] == ["user-1"]
    assert [t["sid"] for t in snapshot["participants"][0]["tracks"]] == ["MT1", "MT2"]

    assert registry.track_unsubscribed("appointment-1", "user-1", "MT1")
    assert registry.participant_disconnected("appointment-1", "user-1") == 1
    assert registry.get("appointment-1").participants == {}


def test_registry_room_end_drops_state():
    registry = RoomRegistry()
    registry.apply_event("participant-connected", "appointment-2", identity="user-1")
    assert registry.apply_event("room-ended", "appointment-2")
    assert registry.get("appointment-2") is None
    assert not registry.room_ended("appointment-2")


def test_registry_ignores_unknown_events():
    registry = RoomRegistry()
    assert not registry.apply_event("recording-started", "appointment-3", identity="user-1")
    assert not registry.apply_event("participant-connected", "appointment-3")
    assert registry.rooms == {}


async def test_token_requires_configuration(client, login, consult, monkeypatch):
    monkeypatch.setattr(video_service, "api_key_secret", None)
    await login(consult["patient"])
    response = await client.post("/api/video/token", json={"roomName": consult["room"]})
    assert response.status_code == 503


async def test_token_for_participant(client, login, consult, video_configured):
    await login(consult["patient"])
    response = await client.post("/api/video/token", json={"roomName": consult["room"]})
    assert response.status_code == 200
    body = response.json()
    assert body["identity"] == f"user-{consult['patient'].id}"
    assert body["roomName"] == consult["room"]
    assert body["token"].count(".") == 2


async def test_token_rejected_for_outsider(client, make_user, login, consult, video_configured):
    await login(await make_user())
    response = await client.post("/api/video/token", json={"roomName": consult["room"]})
    assert response.status_code == 403

    unknown = await client.post("/api/video/token", json={"roomName": "lobby"})
    assert unknown.status_code == 404


async def test_status_callbacks_drive_registry(client, db, login, consult):
    room = consult["room"]
    identity = f"user-{consult['patient'].id}"
    for data in (
        {"StatusCallbackEvent": "participant-connected", "RoomName": room, "ParticipantIdentity": identity},
        {
            "StatusCallbackEvent": "track-added",
            "RoomName": room,
            "ParticipantIdentity": identity,
            "TrackSid": "MT123",
            "TrackKind": "video",
        },
    ):
        response = await client.post("/api/video/events", data=data)
        assert response.json() == {"status": "received", "applied": True}

    await login(consult["doctor"])
    snapshot = (await client.get(f"/api/video/rooms/{room}")).json()
    assert snapshot["participants"][0]["tracks"] == [{"sid": "MT123", "kind": "video"}]

    await client.post("/api/video/events", data={"StatusCallbackEvent": "room-ended", "RoomName": room})
    assert (await client.get(f"/api/video/rooms/{room}")).json()["participants"] == []

    appointment = (await client.get(f"/api/appointments/{consult['appointment'].id}")).json()
    assert appointment["status"] == "completed"


async def test_signed_callbacks(client, monkeypatch):
    monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "auth-token")
    data = {"StatusCallbackEvent": "participant-connected", "RoomName": "appointment-9", "ParticipantIdentity": "user-1"}

    unsigned = await client.post("/api/video/events", data=data)
    assert unsigned.status_code == 403

    signature = RequestValidator("auth-token").compute_signature(CALLBACK_URL, data)
    signed = await client.post("/api/video/events", data=data, headers={"X-Twilio-Signature": signature})
    assert signed.status_code == 200
    assert room_registry.get("appointment-9") is not None
