import pytest

from models.triage import UrgencyLevel
from models.user import UserRole
from repositories.user import UserRepository
from services.triage_service import (
    TriageResponse,
    TriageServiceError,
    contains_emergency_keyword,
    higher_urgency,
    triage_ai,
)

ALERT_TASK = "notify_triage_alert"


class ScriptedAI:
    """Replays canned assistant replies and records what it was asked."""

    def __init__(self):
        self.replies = []
        self.calls = []

    def queue(self, **fields):
        fields.setdefault("message", "Capisco. Da quanto tempo hai questi sintomi?")
        self.replies.append(TriageResponse(**fields))

    async def generate(self, api_key, history, user_message):
        self.calls.append((len(history), user_message))
        if not self.replies:
            raise TriageServiceError("no reply queued")
        return self.replies.pop(0)


@pytest.fixture
def ai(monkeypatch):
    scripted = ScriptedAI()
    monkeypatch.setattr(triage_ai, "generate", scripted.generate)
    return scripted


@pytest.fixture
async def patient(make_user, login):
    user = await make_user(first_name="Lucia", last_name="Bianchi")
    await login(user)
    return user


def test_emergency_keywords_are_case_insensitive():
    assert contains_emergency_keyword("Ho un forte DOLORE AL PETTO da stamattina")
    assert not contains_emergency_keyword("Ho un po' di mal di testa")


def test_urgency_never_decreases():
    assert higher_urgency(UrgencyLevel.HIGH, UrgencyLevel.LOW) == UrgencyLevel.HIGH
    assert higher_urgency(UrgencyLevel.MEDIUM, UrgencyLevel.EMERGENCY) == UrgencyLevel.EMERGENCY


def test_ai_reply_parsing_accepts_camel_case():
    reply = TriageResponse.model_validate(
        {"message": "Ciao", "urgencyLevel": "medium", "relatedTopics": ["sonno"], "needsReportUpload": True}
    )
    assert reply.urgency_level == UrgencyLevel.MEDIUM
    assert reply.needs_report_upload is True


async def test_low_urgency_conversation(client, patient, ai, enqueued):
    ai.queue(related_topics=["alimentazione"])
    started = await client.post("/api/triage/start", json={"initialSymptom": "Mi sento stanco"})
    assert started.status_code == 201
    body = started.json()
    assert body["urgencyLevel"] == "low"
    assert body["alert"] is None
    assert [m["role"] for m in body["messages"]] == ["user", "assistant"]
    assert body["messages"][1]["relatedTopics"] == ["alimentazione"]
    assert body["session"]["title"] == "Mi sento stanco"

    ai.queue(message="Prova a dormire di più.")
    session_id = body["session"]["id"]
    reply = await client.post("/api/triage/message", json={"sessionId": session_id, "content": "Da una settimana"})
    assert reply.status_code == 200
    # the second call sees the first exchange as history
    assert ai.calls[1] == (2, "Da una settimana")

    messages = (await client.get(f"/api/triage/messages/{session_id}")).json()
    assert len(messages) == 4
    assert enqueued == []


async def test_emergency_keyword_raises_alert(client, patient, ai, enqueued):
    ai.queue(urgency_level=UrgencyLevel.LOW)
    response = await client.post("/api/triage/start", json={"initialSymptom": "Ho dolore toracico e sudo freddo"})
    body = response.json()

    assert body["urgencyLevel"] == "emergency"
    assert body["suggestDoctor"] is True
    assert body["alert"]["alertType"] == "emergency"
    assert body["alert"]["status"] == "pending"

    assert len(enqueued) == 1
    name, (payload,) = enqueued[0]
    assert name == ALERT_TASK
    assert payload["patient_id"] == patient.id
    assert payload["patient_name"] == "Lucia Bianchi"
    assert payload["urgency_level"] == "emergency"


async def test_one_open_alert_per_session(client, patient, ai, enqueued):
    ai.queue(is_sensitive=True)
    start = (await client.post("/api/triage/start", json={"initialSymptom": "Mi sento giù"})).json()
    assert start["alert"]["alertType"] == "sensitive_topic"
    assert enqueued == []

    session_id = start["session"]["id"]
    ai.queue(urgency_level=UrgencyLevel.HIGH)
    escalated = (await client.post("/api/triage/message", json={"sessionId": session_id, "content": "Peggiora"})).json()
    assert escalated["alert"]["id"] == start["alert"]["id"]
    assert escalated["alert"]["alertType"] == "high_urgency"
    assert [name for name, _ in enqueued] == [ALERT_TASK]

    ai.queue(urgency_level=UrgencyLevel.LOW)
    calmer = (await client.post("/api/triage/message", json={"sessionId": session_id, "content": "Ora va meglio"})).json()
    assert calmer["urgencyLevel"] == "high"
    assert calmer["alert"]["id"] == start["alert"]["id"]
    assert len(enqueued) == 1

    alerts = (await client.get("/api/user/alerts")).json()["alerts"]
    assert len(alerts) == 1


async def test_start_closes_previous_session(client, patient, ai):
    ai.queue()
    first = (await client.post("/api/triage/start", json={"initialSymptom": "Tosse"})).json()
    ai.queue()
    second = (await client.post("/api/triage/start", json={"initialSymptom": "Febbre"})).json()

    active = (await client.get("/api/triage/session/active")).json()
    assert active["session"]["id"] == second["session"]["id"]
    assert len(active["messages"]) == 2

    closed = await client.post("/api/triage/message", json={"sessionId": first["session"]["id"], "content": "Ancora tosse"})
    assert closed.status_code == 400


async def test_provider_failure_returns_502(client, patient, ai):
    response = await client.post("/api/triage/start", json={"initialSymptom": "Mal di schiena"})
    assert response.status_code == 502
    assert response.json()["message"] == "Assistente non disponibile, riprova più tardi"


async def test_failed_start_keeps_previous_session(client, patient, ai):
    ai.queue()
    first = (await client.post("/api/triage/start", json={"initialSymptom": "Tosse"})).json()

    failed = await client.post("/api/triage/start", json={"initialSymptom": "Febbre"})
    assert failed.status_code == 502

    active = (await client.get("/api/triage/session/active")).json()
    assert active["session"]["id"] == first["session"]["id"]
    assert len(active["messages"]) == 2


async def test_failed_first_start_creates_no_session(client, patient, ai):
    assert (await client.post("/api/triage/start", json={"initialSymptom": "Febbre"})).status_code == 502
    assert (await client.get("/api/triage/session/active")).json()["session"] is None


async def test_sessions_are_private(client, make_user, login, patient, ai):
    ai.queue()
    session_id = (await client.post("/api/triage/start", json={"initialSymptom": "Tosse"})).json()["session"]["id"]

    await login(await make_user())
    assert (await client.get(f"/api/triage/messages/{session_id}")).status_code == 403
    assert (await client.get("/api/triage/messages/999")).status_code == 404


async def test_close_session(client, patient, ai):
    ai.queue()
    session_id = (await client.post("/api/triage/start", json={"initialSymptom": "Tosse"})).json()["session"]["id"]
    closed = await client.post(f"/api/triage/session/{session_id}/close")
    assert closed.json()["status"] == "closed"
    assert (await client.get("/api/triage/session/active")).json()["session"] is None


async def test_alert_review_permissions(client, db, make_user, login, patient, ai):
    ai.queue(urgency_level=UrgencyLevel.EMERGENCY)
    alert_id = (await client.post("/api/triage/start", json={"initialSymptom": "Svenimento"})).json()["alert"]["id"]

    stranger_doctor = await make_user(role=UserRole.DOCTOR)
    await login(stranger_doctor)
    denied = await client.post(f"/api/triage/alerts/{alert_id}/resolve", json={})
    assert denied.status_code == 403

    own_doctor = await make_user(role=UserRole.DOCTOR)
    await UserRepository(db).link_patient(own_doctor.id, patient.id)
    await login(own_doctor)
    resolved = await client.post(
        f"/api/triage/alerts/{alert_id}/resolve",
        json={"status": "monitoring", "notes": "Richiamata la paziente"},
    )
    assert resolved.status_code == 200
    body = resolved.json()
    assert body["status"] == "monitoring"
    assert body["reviewedById"] == own_doctor.id

    assert (await client.post("/api/triage/alerts/999/resolve", json={})).status_code == 404


async def test_admin_alert_queue(client, make_user, login, patient, ai):
    ai.queue(suggest_doctor=True)
    await client.post("/api/triage/start", json={"initialSymptom": "Dolore al ginocchio"})

    assert (await client.get("/api/triage/alerts")).status_code == 403

    await login(await make_user(is_admin=True))
    pending = (await client.get("/api/triage/alerts", params={"status": "pending"})).json()["alerts"]
    assert [a["alertType"] for a in pending] == ["doctor_suggested"]
    assert (await client.get("/api/triage/alerts", params={"status": "closed"})).json()["alerts"] == []
