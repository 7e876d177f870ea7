from datetime import timedelta

from core.database import utcnow
from models.triage import AlertStatus, AlertType, TriageAlert, TriageSession, UrgencyLevel
from models.user import DoctorLinkingCode, UserRole


async def generate_code(client, login, doctor):
    await login(doctor)
    response = await client.post("/api/doctor/generate-code")
    assert response.status_code == 201
    return response.json()["code"]


async def test_patient_links_with_code(client, make_user, login):
    doctor = await make_user(role=UserRole.DOCTOR)
    patient = await make_user(first_name="Paolo", last_name="Verdi")
    code = await generate_code(client, login, doctor)
    assert len(code) == 8

    await login(patient)
    linked = await client.post("/api/doctor/link-patient", json={"code": code.lower()})
    assert linked.status_code == 200
    assert linked.json()["doctorId"] == doctor.id

    # linking twice is harmless
    assert (await client.post("/api/doctor/link-patient", json={"code": code})).status_code == 200

    await login(doctor)
    patients = (await client.get("/api/doctor/patients")).json()["patients"]
    assert [(p["id"], p["lastName"]) for p in patients] == [(patient.id, "Verdi")]


async def test_only_doctors_generate_codes(client, make_user, login):
    await login(await make_user())
    assert (await client.post("/api/doctor/generate-code")).status_code == 403
    assert (await client.get("/api/doctor/patients")).status_code == 403


async def test_only_patients_link(client, make_user, login):
    code = await generate_code(client, login, await make_user(role=UserRole.DOCTOR))
    await login(await make_user(role=UserRole.DOCTOR))
    response = await client.post("/api/doctor/link-patient", json={"code": code})
    assert response.status_code == 403


async def test_invalid_or_expired_code(client, db, make_user, login):
    doctor = await make_user(role=UserRole.DOCTOR)
    db.add(DoctorLinkingCode(doctor_id=doctor.id, code="OLDCODE1", expires_at=utcnow() - timedelta(minutes=1)))
    await db.commit()

    await login(await make_user())
    for code in ("OLDCODE1", "NOPE1234"):
        response = await client.post("/api/doctor/link-patient", json={"code": code})
        assert response.status_code == 404
        assert response.json()["message"] == "Codice non valido o scaduto"


async def test_admin_cannot_link_to_self(client, make_user, login):
    admin = await make_user(is_admin=True)
    code = await generate_code(client, login, admin)
    response = await client.post("/api/doctor/link-patient", json={"code": code})
    assert response.status_code == 400


async def test_doctor_sees_linked_patients_alerts(client, db, make_user, login):
    doctor = await make_user(role=UserRole.DOCTOR)
    linked, unlinked = await make_user(), await make_user()

    for patient in (linked, unlinked):
        session = TriageSession(user_id=patient.id, urgency_level=UrgencyLevel.HIGH)
        db.add(session)
        await db.flush()
        db.add(
            TriageAlert(
                session_id=session.id,
                user_id=patient.id,
                alert_type=AlertType.HIGH_URGENCY,
                reason="Sintomi ad alta urgenza",
                urgency_level=UrgencyLevel.HIGH,
                status=AlertStatus.PENDING,
            )
        )
    await db.commit()

    code = await generate_code(client, login, doctor)
    await login(linked)
    await client.post("/api/doctor/link-patient", json={"code": code})

    await login(doctor)
    alerts = (await client.get("/api/doctor/alerts")).json()["alerts"]
    assert [a["userId"] for a in alerts] == [linked.id]
