import base64
import struct

import pytest

from models.user import UserRole

NOTIFY_TASK = "notify_wearable_anomaly"


def reading(systolic, diastolic, **extra):
    return {"systolic": systolic, "diastolic": diastolic, "measurementTime": "2025-03-01T08:00:00Z", **extra}


@pytest.fixture
async def patient(make_user, login):
    user = await make_user()
    await login(user)
    return user


async def test_device_lifecycle(client, patient):
    created = await client.post(
        "/api/wearable/devices",
        json={"deviceType": "blood_pressure", "name": "Omron M3", "bluetoothId": "AA:BB"},
    )
    assert created.status_code == 201
    device = created.json()["device"]
    assert device["userId"] == patient.id
    assert device["isActive"] is True

    updated = await client.patch(f"/api/wearable/devices/{device['id']}", json={"name": "Salotto"})
    assert updated.json()["device"]["name"] == "Salotto"

    listed = await client.get("/api/wearable/devices")
    assert [d["id"] for d in listed.json()["devices"]] == [device["id"]]

    deleted = await client.delete(f"/api/wearable/devices/{device['id']}")
    assert deleted.status_code == 200
    assert (await client.get("/api/wearable/devices")).json()["devices"] == []


async def test_normal_reading_is_saved_quietly(client, patient, enqueued):
    response = await client.post("/api/wearable/blood-pressure", json=reading(118, 76, heartRate=70))
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Misurazione salvata con successo"
    assert body["reading"]["severity"] == "normal"
    assert body["reading"]["isAnomalous"] is False
    assert body["reading"]["source"] == "manual"
    assert enqueued == []


async def test_high_reading_enqueues_alert(client, patient, enqueued):
    response = await client.post("/api/wearable/blood-pressure", json=reading(165, 102))
    body = response.json()
    assert body["message"] == "Misurazione salvata - Anomalia rilevata"
    assert body["reading"]["severity"] == "high"

    assert len(enqueued) == 1
    name, (payload,) = enqueued[0]
    assert name == NOTIFY_TASK
    assert payload["user_id"] == patient.id
    assert payload["severity"] == "high"
    assert payload["reading_id"] == body["reading"]["id"]


async def test_elevated_reading_does_not_alert(client, patient, enqueued):
    response = await client.post("/api/wearable/blood-pressure", json=reading(132, 78))
    assert response.json()["reading"]["severity"] == "elevated"
    assert enqueued == []


async def test_out_of_range_rejected(client, patient):
    response = await client.post("/api/wearable/blood-pressure", json=reading(300, 80))
    assert response.status_code == 422


async def test_foreign_device_rejected(client, make_user, login):
    owner = await make_user()
    await login(owner)
    device_id = (await client.post("/api/wearable/devices", json={"deviceType": "blood_pressure"})).json()["device"]["id"]

    await login(await make_user())
    response = await client.post("/api/wearable/blood-pressure", json=reading(120, 80, deviceId=device_id))
    assert response.status_code == 403
    assert (await client.delete(f"/api/wearable/devices/{device_id}")).status_code == 403


async def test_unknown_device_rejected(client, patient):
    response = await client.post("/api/wearable/blood-pressure", json=reading(120, 80, deviceId=999))
    assert response.status_code == 404


async def test_raw_payload_hex(client, patient):
    data = struct.pack("<BHHHHBBBBBH", 0x06, 128, 84, 99, 2025, 3, 1, 7, 45, 0, 66)
    response = await client.post(
        "/api/wearable/blood-pressure/raw",
        json={"payload": data.hex(), "encoding": "hex"},
    )
    assert response.status_code == 201
    saved = response.json()["reading"]
    assert (saved["systolic"], saved["diastolic"], saved["heartRate"]) == (128, 84, 66)
    assert saved["meanArterialPressure"] == 99
    assert saved["source"] == "bluetooth"
    assert saved["measurementTime"].startswith("2025-03-01T07:45:00")


async def test_raw_payload_with_unknown_device_date(client, patient):
    data = struct.pack("<BHHHHBBBBBH", 0x06, 118, 76, 90, 0, 0, 0, 0, 0, 0, 70)
    response = await client.post(
        "/api/wearable/blood-pressure/raw",
        json={"payload": data.hex(), "encoding": "hex"},
    )
    assert response.status_code == 201
    saved = response.json()["reading"]
    assert (saved["systolic"], saved["diastolic"], saved["heartRate"]) == (118, 76, 70)
    assert not saved["measurementTime"].startswith("0")


async def test_raw_payload_base64(client, patient):
    data = struct.pack("<BHHH", 0x00, 119, 77, 91)
    response = await client.post(
        "/api/wearable/blood-pressure/raw",
        json={"payload": base64.b64encode(data).decode()},
    )
    assert response.status_code == 201
    assert response.json()["reading"]["systolic"] == 119


@pytest.mark.parametrize(
    "payload,encoding",
    [
        ("zz", "hex"),
        ("@@@@", "base64"),
        ("0078005000", "hex"),
        (struct.pack("<BHHH", 0x01, 16, 11, 13).hex(), "hex"),
    ],
)
async def test_raw_payload_rejected(client, patient, payload, encoding):
    response = await client.post("/api/wearable/blood-pressure/raw", json={"payload": payload, "encoding": encoding})
    assert response.status_code == 400
    assert response.json()["success"] is False


async def test_raw_payload_out_of_range(client, patient):
    data = struct.pack("<BHHH", 0x00, 400, 80, 90)
    response = await client.post("/api/wearable/blood-pressure/raw", json={"payload": data.hex(), "encoding": "hex"})
    assert response.status_code == 400
    assert response.json()["message"] == "Valori misurati fuori intervallo"


async def test_history_and_anomalies(client, patient):
    await client.post("/api/wearable/blood-pressure", json=reading(120, 75))
    await client.post("/api/wearable/blood-pressure", json=reading(150, 95))

    history = (await client.get("/api/wearable/blood-pressure")).json()
    assert len(history["readings"]) == 2
    assert history["stats"] == {"total": 2, "anomalous": 1, "averageSystolic": 135, "averageDiastolic": 85}

    anomalies = (await client.get("/api/wearable/blood-pressure/anomalies")).json()
    assert anomalies["count"] == 1
    assert anomalies["anomalies"][0]["systolic"] == 150


async def test_history_is_private(client, make_user, login):
    await login(await make_user())
    await client.post("/api/wearable/blood-pressure", json=reading(120, 80))

    await login(await make_user(role=UserRole.DOCTOR))
    assert (await client.get("/api/wearable/blood-pressure")).json()["stats"]["total"] == 0
