from core.config import settings


async def test_register_logs_in(client):
    response = await client.post(
        "/api/auth/register",
        json={"email": "Anna@Example.com", "password": "segreta123", "firstName": "Anna"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "anna@example.com"
    assert body["role"] == "patient"
    assert body["isPremium"] is False
    assert settings.SESSION_COOKIE_NAME in response.cookies

    me = await client.get("/api/auth/user")
    assert me.status_code == 200
    assert me.json()["firstName"] == "Anna"


async def test_register_duplicate_email(client, make_user):
    await make_user(email="dup@example.com")
    response = await client.post(
        "/api/auth/register",
        json={"email": "dup@example.com", "password": "segreta123"},
    )
    assert response.status_code == 409
    assert response.json()["success"] is False


async def test_login_wrong_password(client, make_user):
    user = await make_user()
    response = await client.post("/api/auth/login", json={"email": user.email, "password": "sbagliata"})
    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect email or password"


async def test_login_disabled_account(client, make_user):
    user = await make_user(is_active=False)
    response = await client.post("/api/auth/login", json={"email": user.email, "password": "password123"})
    assert response.status_code == 403


async def test_logout_ends_session(client, make_user, login):
    session_id = (await login(await make_user())).cookies[settings.SESSION_COOKIE_NAME]
    assert (await client.get("/api/auth/user")).status_code == 200

    response = await client.post("/api/auth/logout")
    assert response.status_code == 200
    client.cookies.clear()

    replay = await client.get("/api/auth/user", headers={"Cookie": f"{settings.SESSION_COOKIE_NAME}={session_id}"})
    assert replay.status_code == 401
    assert replay.json()["message"] == "Invalid or expired session"


async def test_anonymous_request_rejected(client):
    response = await client.get("/api/wearable/devices")
    assert response.status_code == 401


async def test_validation_error_shape(client):
    response = await client.post("/api/auth/register", json={"email": "not-an-email", "password": "x"})
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["detail"]
