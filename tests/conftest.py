import os

os.environ["ENV"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SESSION_COOKIE_SECURE"] = "true"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["ENABLE_FILE_LOGGING"] = "false"
os.environ["ENABLE_REQUEST_LOGGING"] = "false"
os.environ["SENTRY_DSN"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.database import Base, get_db
from main import app
from models.user import User, UserRole
from services.helpers import hash_password
from services.messaging_service import MessageResult, messaging_service
from services.push_service import push_service
from services.settings_service import clear_api_key_cache

PASSWORD = "password123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(email=None, role=UserRole.PATIENT, **fields) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(PASSWORD),
            first_name=fields.pop("first_name", "Mario"),
            last_name=fields.pop("last_name", f"Rossi{counter['n']}"),
            role=role,
            **fields,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest.fixture
def login(client):
    async def _login(user: User):
        client.cookies.clear()
        response = await client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert response.status_code == 200, response.text
        return response

    return _login


@pytest.fixture(autouse=True)
def enqueued(monkeypatch):
    """Records Celery tasks instead of sending them to a broker."""
    calls = []

    def fake_enqueue(task, *args):
        calls.append((task.name, args))
        return True

    for module in ("api.v1.wearable", "api.v1.triage", "api.v1.certificates"):
        monkeypatch.setattr(f"{module}.enqueue", fake_enqueue)
    return calls


@pytest.fixture(autouse=True)
def debounce(monkeypatch):
    """In-memory replacement for the Redis SET NX EX debounce."""
    keys = set()

    def fake_acquire(key, ttl_seconds):
        if key in keys:
            return False
        keys.add(key)
        return True

    monkeypatch.setattr("services.wearable_notifications.acquire_debounce", fake_acquire)
    return keys


@pytest.fixture(autouse=True)
def whatsapp_outbox(monkeypatch):
    sent = []

    async def fake_send_whatsapp(to_number, message):
        sent.append((to_number, message))
        return MessageResult(success=True, sid=f"SM{len(sent):04d}")

    monkeypatch.setattr(messaging_service, "send_whatsapp", fake_send_whatsapp)
    return sent


@pytest.fixture(autouse=True)
def push_outbox(monkeypatch):
    sent = []

    def fake_send(subscription, payload):
        sent.append((subscription.endpoint, payload))
        return None

    monkeypatch.setattr(push_service, "public_key", "test-public-key")
    monkeypatch.setattr(push_service, "private_key", "test-private-key")
    monkeypatch.setattr(push_service, "send", fake_send)
    return sent


@pytest.fixture(autouse=True)
def reset_api_key_cache():
    clear_api_key_cache()
    yield
    clear_api_key_cache()
