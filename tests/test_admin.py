import csv
import io

import pytest

from admin.auth import AdminAuth
from core.config import settings
from models.user import SubscriptionTier


@pytest.fixture
async def admin(make_user, login):
    user = await make_user(email="admin@example.com", is_admin=True, first_name="Anna")
    await login(user)
    return user


async def test_list_and_search_users(client, make_user, admin):
    await make_user(email="giulia.ferri@example.com", first_name="Giulia")
    await make_user(email="marco@example.com", first_name="Marco")

    everyone = (await client.get("/api/admin/users")).json()
    assert [u["email"] for u in everyone] == ["admin@example.com", "giulia.ferri@example.com", "marco@example.com"]

    found = (await client.get("/api/admin/users", params={"search": "GIULIA"})).json()
    assert [u["firstName"] for u in found] == ["Giulia"]

    page = (await client.get("/api/admin/users", params={"skip": 1, "limit": 1})).json()
    assert [u["email"] for u in page] == ["giulia.ferri@example.com"]


async def test_export_users_csv(client, make_user, admin):
    await make_user(email="paziente@example.com", subscription_tier=SubscriptionTier.PREMIUM)

    response = await client.get("/api/admin/users/export/csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="users.csv"'

    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert [r["email"] for r in rows] == ["admin@example.com", "paziente@example.com"]
    assert rows[1]["subscription_tier"] == "premium"
    assert rows[0]["is_admin"] == "True"
    assert rows[1]["last_login"] == ""


async def test_update_user(client, make_user, admin):
    patient = await make_user()
    response = await client.patch(
        f"/api/admin/users/{patient.id}",
        json={"subscriptionTier": "premium", "aiOnlyAccess": True},
    )
    assert response.status_code == 200
    assert response.json()["subscriptionTier"] == "premium"
    assert response.json()["aiOnlyAccess"] is True

    assert (await client.patch("/api/admin/users/999", json={"isActive": False})).status_code == 404


async def test_admin_cannot_demote_self(client, admin):
    for change in ({"isAdmin": False}, {"isActive": False}):
        response = await client.patch(f"/api/admin/users/{admin.id}", json=change)
        assert response.status_code == 400
        assert response.json()["message"] == "You cannot remove your own admin access"


async def test_settings_mask_secrets(client, admin):
    saved = await client.put(
        "/api/admin/settings/OPENAI_API_KEY",
        json={"value": "sk-live-123", "description": "Chiave OpenAI", "isSecret": True},
    )
    assert saved.status_code == 200
    assert saved.json()["value"] == "********"

    await client.put("/api/admin/settings/APPOINTMENTS_ENABLED", json={"value": "true"})

    listed = {s["key"]: s for s in (await client.get("/api/admin/settings")).json()}
    assert listed["OPENAI_API_KEY"]["value"] == "********"
    assert listed["OPENAI_API_KEY"]["description"] == "Chiave OpenAI"
    assert listed["APPOINTMENTS_ENABLED"]["value"] == "true"
    assert listed["APPOINTMENTS_ENABLED"]["isSecret"] is False


async def test_wearable_stats_on_empty_database(client, admin):
    body = (await client.get("/api/admin/wearable/stats")).json()
    assert body["stats"]["totalReadings"] == 0
    assert body["stats"]["anomalyRate"] == 0
    assert (await client.get("/api/admin/wearable/anomalies")).json()["count"] == 0


async def test_management_requires_admin(client, make_user, login):
    await login(await make_user())
    for path in ("/api/admin/users", "/api/admin/settings", "/api/admin/wearable/stats"):
        response = await client.get(path)
        assert response.status_code == 403


class FakeRequest:
    def __init__(self, **form):
        self._form = form
        self.session = {}

    async def form(self):
        return self._form


async def test_admin_panel_login(monkeypatch):
    auth = AdminAuth(secret_key="test-secret")
    monkeypatch.setattr(settings, "ADMIN_USERNAME", None)
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", None)
    assert await auth.login(FakeRequest(username="", password="")) is False

    monkeypatch.setattr(settings, "ADMIN_USERNAME", "staff")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "s3cret")
    assert await auth.login(FakeRequest(username="staff", password="wrong")) is False

    request = FakeRequest(username="staff", password="s3cret")
    assert await auth.login(request) is True
    assert await auth.authenticate(request) is True

    await auth.logout(request)
    assert await auth.authenticate(request) is False


def test_user_admin_never_exposes_password_hash():
    from admin.admin import UserAdmin

    assert "password_hash" not in {column.key for column in UserAdmin.column_list}
    assert "password_hash" in {column.key for column in UserAdmin.form_excluded_columns}
    assert not getattr(UserAdmin, "column_exclude_list", None)
