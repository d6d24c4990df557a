import os

# Must be set before any glifghe module builds its settings / engine
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OTEL_EXPORTER_OTLP_ENDPOINT"] = ""
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["QUERY_RETRY"] = "0"
os.environ["AUTH_DOMAIN"] = "idp.test"
os.environ["AUTH_CLIENT_ID"] = "client-123"
os.environ["AUTH_CLIENT_SECRET"] = "shh"
os.environ["AUTH_REDIRECT_URI"] = "http://testserver/callback"

import fakeredis
import pytest
from httpx import ASGITransport, AsyncClient

from glifghe.api.auth import get_current_auth_id
from glifghe.api.clients import redis_client
from glifghe.api.database import AsyncSessionLocal, Base, engine
from glifghe.api.main import app as api_app


@pytest.fixture
async def db_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    # In-memory SQLite: disposing the pool throws the database away
    await engine.dispose()


@pytest.fixture
async def db_session(db_tables):
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def fake_redis(monkeypatch):
    r = fakeredis.aioredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(redis_client, "_redis", r)
    yield r
    await r.aclose()


@pytest.fixture
def login_as():
    """Authenticate API calls as the given subject, bypassing the identity provider."""

    def _login(auth_id: str) -> None:
        api_app.dependency_overrides[get_current_auth_id] = lambda: auth_id

    yield _login
    api_app.dependency_overrides.clear()


@pytest.fixture
async def api(db_tables, fake_redis):
    async with AsyncClient(
        transport=ASGITransport(app=api_app), base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
def make_profile(api, login_as):
    """Create a profile as `auth_id`; leaves the caller logged in as that user."""

    async def _make(auth_id: str, name: str, **extra) -> dict:
        login_as(auth_id)
        resp = await api.post("/users/", json={"name": name, **extra})
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make
