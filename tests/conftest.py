"""
Test Fixtures
=============

Shared fixtures: an in-memory SQLite database, sessions bound to it and
httpx clients talking to the ASGI app with a session cookie.
"""

import os

# Settings are read at import time, so the environment must be set first
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["DEV_AUTH_DISABLED"] = "false"
os.environ["DATABASE_URL"] = ""
os.environ.pop("FIREBASE_PROJECT_ID", None)

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import taskboard.models  # noqa: F401  (registers tables on Base.metadata)
from taskboard.config import settings
from taskboard.core.security import create_session_token
from taskboard.db.base import Base
from taskboard.db.session import get_db
from taskboard.main import app as fastapi_app

USER_UID = "user-1"
USER_EMAIL = "user1@example.com"
OTHER_UID = "user-2"
OTHER_EMAIL = "user2@example.com"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
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
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(session_factory):
    """The FastAPI app with the database dependency pointed at the test DB."""

    async def _get_test_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = _get_test_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


def _make_client(app, uid=None, email=None) -> AsyncClient:
    cookies = None
    if uid is not None:
        cookies = {settings.AUTH_COOKIE_NAME: create_session_token(uid, email)}
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=cookies,
    )


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Client signed in as USER_UID."""
    async with _make_client(app, USER_UID, USER_EMAIL) as ac:
        yield ac


@pytest_asyncio.fixture
async def other_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Client signed in as OTHER_UID."""
    async with _make_client(app, OTHER_UID, OTHER_EMAIL) as ac:
        yield ac


@pytest_asyncio.fixture
async def anon_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Client without a session cookie."""
    async with _make_client(app) as ac:
        yield ac
