"""Test fixtures — a fresh app and in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine on an in-memory SQLite database
   (StaticPool keeps the single connection alive for the test's lifetime).
2. create_app() receives that Database explicitly: no dependency
   overrides, no shared global engine, nothing leaks between tests.
3. httpx.AsyncClient talks to the app in-process via ASGITransport.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from quill.config import Settings
from quill.db.engine import Database
from quill.main import create_app

TEST_PASSWORD = "Pw123!secret"


@pytest.fixture()
def settings():
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite://",
        jwt_secret="test-secret-do-not-use-outside-the-test-suite",
        log_json=False,
        log_level="WARNING",
    )


@pytest_asyncio.fixture()
async def database():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db = Database(engine)
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


@pytest.fixture()
def app(settings, database):
    return create_app(settings=settings, database=database)


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_user(client):
    """Factory: sign up + sign in a fresh user.

    Returns a dict with id, email, access/refresh tokens and ready-made
    Authorization headers.
    """

    async def _make(prefix: str = "user", **profile) -> dict:
        email = f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"
        r = await client.post(
            "/auth/signup",
            json={"email": email, "password": TEST_PASSWORD, **profile},
        )
        assert r.status_code == 201, r.text
        user_id = r.json()["id"]

        r = await client.post(
            "/auth/signin", json={"email": email, "password": TEST_PASSWORD}
        )
        assert r.status_code == 200, r.text
        tokens = r.json()
        return {
            "id": user_id,
            "email": email,
            "access_token": tokens["accessToken"],
            "refresh_token": tokens["refreshToken"],
            "headers": {"Authorization": f"Bearer {tokens['accessToken']}"},
        }

    return _make


@pytest.fixture()
def make_post(client):
    """Factory: create a post as the given user, return its id."""

    async def _make(user: dict, title: str = "Test Post", **fields) -> str:
        r = await client.post(
            "/posts",
            json={"title": title, "body": "Some body text", **fields},
            headers=user["headers"],
        )
        assert r.status_code == 201, r.text
        return r.json()["postId"]

    return _make
