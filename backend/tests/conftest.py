"""
Pytest configuration and fixtures for SPECTRA API tests.

Provides:
- Async SQLite in-memory database setup
- FastAPI app with dependency overrides
- AsyncClient for testing async endpoints
- A bare AsyncSession for service-level tests
"""

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from database import Base, get_db
from main import app


@pytest_asyncio.fixture
async def session_factory():
    """
    Fresh in-memory database for each test.

    Yields:
        sessionmaker bound to the test engine.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
    )

    async_session = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        future=True,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_session

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    """AsyncSession on the test database, for calling services directly."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(session_factory):
    """
    Create an AsyncClient pointing to the FastAPI app with the in-memory
    test database.

    Yields:
        httpx.AsyncClient: Async HTTP client for making requests to the app.
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
