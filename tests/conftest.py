"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

os.environ.setdefault("WL_EMAIL_PROVIDER", "log")
os.environ.setdefault("WL_LOG_FORMAT", "console")
os.environ.setdefault("WL_JWT_SECRET", "test-secret-at-least-32-characters-long!!")

from worldleader.config import get_settings  # noqa: E402
from worldleader.database import close_db, get_session_factory, init_db  # noqa: E402
from worldleader.db.base import Base  # noqa: E402
from worldleader.db.models import Continent, User  # noqa: E402
from worldleader.email.service import reset_email_service  # noqa: E402
from worldleader.main import create_app  # noqa: E402
from worldleader.ranking import engine as ranking_engine  # noqa: E402

TEST_PASSWORD = "SecureP@ss1"

# argon2 hash of TEST_PASSWORD is slow to compute; rows inserted directly get a placeholder
PLACEHOLDER_HASH = "$argon2id$v=19$m=65536,t=2,p=1$placeholder$placeholder"


@pytest.fixture(autouse=True)
def _fresh_process_state():
    """Reset module-level singletons that must not leak between event loops."""
    get_settings.cache_clear()
    reset_email_service()
    ranking_engine._ranking_lock = ranking_engine.asyncio.Lock()
    yield
    reset_email_service()


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[None, None]:
    """A fresh SQLite database file with the full schema, wired into the app."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'worldleader.db'}"
    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await init_db(url, engine=engine)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test setup and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client. Redis is not initialized, so rate limits are off."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_email_service(monkeypatch):
    """Mock the email service to prevent actual email sending."""
    mock_service = MagicMock()
    mock_service.send_template = AsyncMock(return_value=True)
    mock_service.send_email = AsyncMock(return_value=True)

    monkeypatch.setattr("worldleader.notifications.dispatch.get_email_service", lambda *a, **kw: mock_service)
    return mock_service


async def register_via_api(
    client: AsyncClient,
    username: str,
    continent: str = "EUROPE",
    email: str | None = None,
    country_code: str = "FR",
) -> dict:
    """Register through the API and return the response body plus credentials."""
    email = email or f"{username.lower()}@example.com"
    response = await client.post("/api/v1/auth/register", json={
        "email": email,
        "username": username,
        "password": TEST_PASSWORD,
        "continent": continent,
        "countryCode": country_code,
    })
    assert response.status_code == 201, response.text
    data = response.json()
    return {
        "email": email,
        "password": TEST_PASSWORD,
        "user_id": data["user"]["id"],
        "access_token": data["access_token"],
        "user": data["user"],
    }


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def add_user(
    db: AsyncSession,
    username: str,
    continent: Continent = Continent.EUROPE,
    positions: int = 0,
    joined_minutes_ago: int = 0,
) -> User:
    """Insert a competitor directly (no ranking recompute, no commit)."""
    user = User(
        email=f"{username.lower()}@example.com",
        username=username,
        password_hash=PLACEHOLDER_HASH,
        continent=continent,
        country_code="XX",
        total_positions_purchased=positions,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc) - timedelta(minutes=joined_minutes_ago),
    )
    db.add(user)
    await db.flush()
    return user


async def fetch_user(user_id: int) -> User:
    """Load a user on a fresh session so the result reflects committed state."""
    async with get_session_factory()() as session:
        user = await session.get(User, user_id)
        assert user is not None
        return user


@pytest_asyncio.fixture
async def registered_user(client: AsyncClient, mock_email_service) -> dict:
    """One user registered through the API."""
    return await register_via_api(client, "alice")


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, registered_user: dict) -> AsyncClient:
    """Client authenticated as ``registered_user`` via bearer token."""
    client.headers.update(auth_headers(registered_user["access_token"]))
    return client
