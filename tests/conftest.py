"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from backend.app.config import Settings
from backend.app.db.models import Base


@pytest.fixture
def settings() -> Settings:
    """Settings with small limits and no external backends."""
    return Settings(
        _env_file=None,
        openai_api_key=None,
        database_url=None,
        redis_url=None,
        chunk_size_chars=200,
        max_document_chars=5000,
        max_summary_chars=2000,
        chat_timeout_seconds=2.0,
    )


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the content index tables.

    StaticPool keeps one connection so every session sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Async session bound to the in-memory engine."""
    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        yield session
