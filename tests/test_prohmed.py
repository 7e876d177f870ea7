import re
from datetime import timedelta

import pytest

from core.database import utcnow
from models.prohmed import ProhmedCode, ProhmedCodeStatus

CODE_FORMAT = re.compile(r"^PROHMED-[A-Z0-9]{4}-[A-Z0-9]{4}$")


@pytest.fixture
async def admin(make_user, login):
    user = await make_user(is_admin=True)
    await login(user)
    return user


async def test_admin_generates_codes(client, admin):
    response = await client.post("/api/prohmed-codes/generate", json={"count": 3, "type": "family"})
    assert response.status_code == 201
    body = response.json()
    assert body["count"] == 3
    assert len({c["code"] for c in body["codes"]}) == 3
    for code in body["codes"]:
        assert CODE_FORMAT.match(code["code"])
        assert code["accessType"] == "family"
        assert code["status"] == "active"
        assert code["expiresAt"] is not None

    listed = (await client.get("/api/prohmed-codes", params={"status": "active"})).json()
    assert listed["count"] == 3
    assert (await client.get("/api/prohmed-codes", params={"status": "redeemed"})).json()["count"] == 0


async def test_generation_is_admin_only(client, make_user, login):
    await login(await make_user())
    assert (await client.post("/api/prohmed-codes/generate", json={"count": 1})).status_code == 403
    assert (await client.get("/api/prohmed-codes")).status_code == 403


async def test_redeem_code(client, make_user, login, admin):
    code = (await client.post("/api/prohmed-codes/generate", json={})).json()["codes"][0]["code"]

    patient = await make_user()
    await login(patient)
    redeemed = await client.post("/api/prohmed-codes/redeem", json={"code": f"  {code.lower()} "})
    assert redeemed.status_code == 200
    body = redeemed.json()
    assert body["success"] is True
    assert body["code"]["status"] == "redeemed"
    assert body["code"]["userId"] == patient.id

    await login(await make_user())
    again = await client.post("/api/prohmed-codes/redeem", json={"code": code})
    assert again.status_code == 409
    assert again.json()["message"] == "Codice non più attivo"


async def test_redeem_unknown_or_expired(client, db, make_user, login):
    stale = ProhmedCode(code="PROHMED-OLD0-0000", expires_at=utcnow() - timedelta(days=1))
    db.add(stale)
    await db.commit()

    await login(await make_user())
    unknown = await client.post("/api/prohmed-codes/redeem", json={"code": "PROHMED-NOPE-0000"})
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "Codice non trovato"

    expired = await client.post("/api/prohmed-codes/redeem", json={"code": "PROHMED-OLD0-0000"})
    assert expired.status_code == 410
    assert expired.json()["message"] == "Codice scaduto"

    # once expired the code stays unusable
    assert (await client.post("/api/prohmed-codes/redeem", json={"code": "PROHMED-OLD0-0000"})).status_code == 409
    await db.refresh(stale)
    assert stale.status == ProhmedCodeStatus.EXPIRED
