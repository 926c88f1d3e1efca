"""Pytest configuration for all tests."""

import os

# Required configuration must be present before any latchkey module loads settings.
os.environ.setdefault("LATCHKEY_JWT_SECRET", "test-secret-key")
os.environ.setdefault("LATCHKEY_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LATCHKEY_ENVIRONMENT", "testing")
# Cheap hashing keeps the suite fast
os.environ.setdefault("LATCHKEY_PASSWORD_HASH_TIME_COST", "1")
os.environ.setdefault("LATCHKEY_PASSWORD_HASH_MEMORY_COST", "1024")
os.environ.setdefault("LATCHKEY_PASSWORD_HASH_PARALLELISM", "1")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from latchkey.infrastructure.persistence import models  # noqa: F401
from latchkey.infrastructure.persistence.database import Base


class FakeClock:
    """Controllable wall clock returning epoch seconds."""

    def __init__(self, start: float = 1_800_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at a fixed instant."""
    return FakeClock()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database for testing.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with overridden database dependency."""
    from latchkey.infrastructure.api.app import app
    from latchkey.infrastructure.persistence.database import get_db_session

    app.dependency_overrides[get_db_session] = lambda: db_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides = {}
