"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.

Redis (token blacklist) and S3 (document bytes) are replaced with
in-memory doubles so the suite needs no external services.
"""

import os

# Settings are read at import time; configure before importing the app
os.environ.setdefault("JWT_SECRET", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from typing import AsyncGenerator, Dict, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from caportal.core import auth as auth_module
from caportal.core.exceptions import FileStorageError
from caportal.db.session import get_db
from caportal.main import app
from caportal.models.base import Base
from caportal.models.user import UserRole
from caportal.services.storage import get_file_storage
from tests.factories import ClientFactory, UserFactory, auth_headers


TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============================================================================
# Test doubles
# ============================================================================


class FakeRedis:
    """The two Redis commands the token blacklist uses, kept in a dict."""

    def __init__(self):
        self.store: Dict[str, str] = {}

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.store[key] = value

    async def exists(self, key: str) -> int:
        return 1 if key in self.store else 0


class InMemoryFileStorage:
    """FileStorage backend holding objects in a dict."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.fail_reads = False

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        self.objects[key] = data

    async def get(self, key: str) -> bytes:
        if self.fail_reads or key not in self.objects:
            raise FileStorageError(message="Failed to download file from storage", key=key)
        return self.objects[key]

    async def delete(self, key: str) -> None:
        self.objects.pop(key, None)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    """
    Replace the Redis connection with an in-memory double.

    WHY: The auth module keeps a global client; without this every
    authenticated request would try to reach a real Redis server.
    """
    redis = FakeRedis()

    async def _get_redis():
        return redis

    monkeypatch.setattr(auth_module, "get_redis", _get_redis)
    return redis


@pytest.fixture
def file_storage() -> InMemoryFileStorage:
    return InMemoryFileStorage()


# ============================================================================
# Database
# ============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope gives each test a fresh in-memory database. StaticPool
    keeps the single connection alive so every session sees the same data.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session for the test, rolled back afterwards."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    file_storage: InMemoryFileStorage,
) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client bound to the app, sharing the test session and storage.

    WHY: Requests and assertions look at the same session, so data created
    by a fixture is visible to the request and vice versa.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: file_storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Principals
# ============================================================================


@pytest_asyncio.fixture
async def test_client_record(db_session: AsyncSession):
    """The client (customer) most tests bill and file documents for."""
    return await ClientFactory.create(db_session, name="Asha Traders", email="accounts@ashatraders.com")


@pytest_asyncio.fixture
async def other_client_record(db_session: AsyncSession):
    return await ClientFactory.create(db_session, name="Bharat Stores", email="office@bharatstores.com")


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession):
    return await UserFactory.create(
        db_session, email="owner@caoffice.in", role=UserRole.ADMIN, password="AdminPassword123!"
    )


@pytest_asyncio.fixture
async def test_manager(db_session: AsyncSession):
    return await UserFactory.create(db_session, email="manager@caoffice.in", role=UserRole.MANAGER)


@pytest_asyncio.fixture
async def test_staff(db_session: AsyncSession):
    return await UserFactory.create(db_session, email="staff@caoffice.in", role=UserRole.STAFF)


@pytest_asyncio.fixture
async def test_intern(db_session: AsyncSession):
    return await UserFactory.create(db_session, email="intern@caoffice.in", role=UserRole.INTERN)


@pytest_asyncio.fixture
async def test_client_user(db_session: AsyncSession, test_client_record):
    """Portal login bound to test_client_record."""
    return await UserFactory.create(
        db_session,
        email="login@ashatraders.com",
        role=UserRole.CLIENT,
        client_id=test_client_record.id,
        password="ClientPassword123!",
    )


@pytest.fixture
def admin_headers(test_admin) -> Dict[str, str]:
    return auth_headers(test_admin)


@pytest.fixture
def manager_headers(test_manager) -> Dict[str, str]:
    return auth_headers(test_manager)


@pytest.fixture
def staff_headers(test_staff) -> Dict[str, str]:
    return auth_headers(test_staff)


@pytest.fixture
def intern_headers(test_intern) -> Dict[str, str]:
    return auth_headers(test_intern)


@pytest.fixture
def client_headers(test_client_user) -> Dict[str, str]:
    return auth_headers(test_client_user)
