"""Shared test fixtures."""

from __future__ import annotations

import os
import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

# Settings are read on first use; point them at an in-memory database before any app import.
os.environ["CALLEDIT_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CALLEDIT_REDIS_URL"] = ""
os.environ["CALLEDIT_AUTH_JWT_SECRET"] = "test-secret-with-enough-bytes-for-hs256"
os.environ["CALLEDIT_ADMIN_EMAILS"] = '["admin@example.com"]'
os.environ["CALLEDIT_LLM_API_KEY"] = ""
os.environ["CALLEDIT_LOG_FORMAT"] = "console"

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from calledit.config import get_settings  # noqa: E402
from calledit.database import close_db, get_engine, get_session, init_db  # noqa: E402
from calledit.db.base import Base  # noqa: E402
from calledit.db.models import Prediction, Profile  # noqa: E402
from calledit.main import create_app  # noqa: E402

get_settings.cache_clear()


def make_token(
    sub: str,
    email: str | None = None,
    expires_in: int = 3600,
    **user_metadata: Any,  # noqa: ANN401
) -> str:
    """Mint a session token the way the identity provider does."""
    settings = get_settings()
    payload: dict[str, Any] = {
        "sub": sub,
        "aud": settings.auth_jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        "user_metadata": user_metadata,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


def auth_headers(sub: str, email: str | None = None, **user_metadata: Any) -> dict[str, str]:  # noqa: ANN401
    return {"Authorization": f"Bearer {make_token(sub, email, **user_metadata)}"}


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema per test."""
    get_settings.cache_clear()
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def app(database: None) -> FastAPI:
    return create_app()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the app (no Redis, so no rate limiting)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for seeding and assertions."""
    async for session in get_session():
        yield session
        break


@pytest.fixture
def make_profile(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory inserting a committed profile."""

    async def _make(
        email: str | None = None,
        full_name: str | None = None,
        username: str | None = None,
        role: str = "user",
    ) -> Profile:
        profile = Profile(
            id=str(uuid.uuid4()),
            email=email,
            full_name=full_name,
            username=username,
            role=role,
        )
        db_session.add(profile)
        await db_session.commit()
        return profile

    return _make


@pytest.fixture
def make_prediction(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory inserting a committed prediction."""

    async def _make(
        owner: Profile,
        text: str = "It will rain tomorrow",
        category: str = "not-on-my-bingo",
        created_at: datetime | None = None,
        is_private: bool = False,
        deleted: bool = False,
    ) -> Prediction:
        now = datetime.now(timezone.utc)
        prediction = Prediction(
            id=str(uuid.uuid4()),
            user_id=owner.id,
            category=category,
            prediction=text,
            created_at=created_at or now,
            is_private=is_private,
            deleted_at=now if deleted else None,
        )
        db_session.add(prediction)
        await db_session.commit()
        return prediction

    return _make
