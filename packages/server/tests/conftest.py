"""
Shared fixtures: an in-memory SQLite database per test, the app wired to it,
and helpers to log users in and set up organizations.
"""

from __future__ import annotations

import os

os.environ.setdefault("WORKLOG_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("WORKLOG_BCRYPT_ROUNDS", "4")
os.environ.setdefault("WORKLOG_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import worklog.models  # noqa: F401
from worklog.core.database import get_session
from worklog.main import app

DEFAULT_PASSWORD = "correct-horse-battery"


# ---------------------------------------------------------------------------
# Fixtures - in-memory SQLite for fast tests
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    """A bare session for service-level tests; the test decides when to commit."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_session():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def login(client):
    """Log a user in and return ``(headers, body)`` for Bearer-authenticated calls."""

    async def _login(email: str, name: str | None = None, password: str = DEFAULT_PASSWORD):
        resp = await client.post(
            "/auth/login",
            json={"email": email, "name": name or email.split("@")[0].title(), "password": password},
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        # Bearer only; a stored session cookie would authenticate anonymous calls.
        client.cookies.clear()
        return {"Authorization": f"Bearer {body['access_token']}"}, body

    return _login


@pytest.fixture
def create_org(client):
    """Create an organization as the given user and return its JSON."""

    async def _create(headers: dict, name: str = "Acme Corp"):
        resp = await client.post("/organizations", json={"name": name}, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["organization"]

    return _create


@pytest.fixture
def add_member(client, login):
    """Invite ``email`` into ``org_id`` as ``admin_headers`` and accept it; returns headers."""

    async def _add(org_id: str, admin_headers: dict, email: str, role: str = "member"):
        resp = await client.post(
            f"/organizations/{org_id}/invite",
            json={"email": email, "role": role},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text

        headers, _ = await login(email)
        me = await client.get("/auth/me", headers=headers)
        token = me.json()["pending_invitations"][0]["token"]
        resp = await client.post(
            "/organizations/accept-invitation", json={"token": token}, headers=headers
        )
        assert resp.status_code == 200, resp.text
        return headers

    return _add
