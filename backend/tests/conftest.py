"""
SkateSwap Backend - Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for pure unit tests
    ├── db_session: real AsyncSession on an in-memory SQLite database
    ├── seller / buyer: users persisted in db_session
    ├── png_data_uri: a valid 1x1 PNG as a data URI
    └── test_client: HTTPX AsyncClient whose requests use db_session
"""

import os

# Override settings for testing BEFORE any skateswap imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["CLOUDINARY_CLOUD_NAME"] = "test-cloud"
os.environ["CLOUDINARY_API_KEY"] = "test-key-not-real"
os.environ["CLOUDINARY_API_SECRET"] = "test-secret-not-real"
os.environ["JWT_SECRET"] = "test-jwt-secret"
# No backoff sleeps between upload retries
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["BCRYPT_ROUNDS"] = "4"

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from skateswap.database import Base, get_db_session
from skateswap.models.conversation import Conversation, Message  # noqa: F401
from skateswap.models.listing import Listing  # noqa: F401
from skateswap.models.user import User
from skateswap.services.auth_service import hash_password

# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        async def test_get_listing(mock_db_session):
            mock_db_session.get.return_value = listing
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.scalar = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.delete = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_session():
    """
    Real AsyncSession on a fresh in-memory SQLite database.

    StaticPool keeps the single in-memory connection alive for the whole
    test; the schema is created from the ORM metadata.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


async def _make_user(session: AsyncSession, username: str, email: str, location=None) -> User:
    user = User(
        first_name=username.capitalize(),
        last_name="Tester",
        username=username,
        email=email,
        password=hash_password("password123"),
        location=location,
    )
    session.add(user)
    await session.flush()
    return user


@pytest_asyncio.fixture
async def seller(db_session):
    return await _make_user(db_session, "deckdealer", "seller@example.com", "Nairobi, Kenya")


@pytest_asyncio.fixture
async def buyer(db_session):
    return await _make_user(db_session, "kickflipkid", "buyer@example.com")


@pytest.fixture
def png_data_uri():
    return f"data:image/png;base64,{PNG_BASE64}"


@pytest_asyncio.fixture
async def test_client(db_session):
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    Every request shares db_session, so data created through one request
    (or directly through the fixtures) is visible to the next.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from skateswap.main import app

    async def override_get_db_session():
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
