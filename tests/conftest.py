import uuid
from typing import Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from app.api.core.config import settings

# Import all models to ensure they are registered with SQLAlchemy before creating tables
from app.api.modules.v1.stripe_connect import models as stripe_connect_models  # noqa: F401
from app.api.modules.v1.users.models.users_model import User


@pytest.fixture(autouse=True, scope="function")
def mock_redis(monkeypatch):
    """
    Mock Redis client for all tests to avoid connection errors.
    This fixture is autouse=True so it applies to all tests automatically.
    """
    monkeypatch.setattr(settings, "REDIS_URL", "redis://localhost:6379/0")

    # Create a simple in-memory store to simulate Redis behavior
    redis_store = {}
    ttls = {}

    mock_redis_client = AsyncMock()

    async def mock_get(key):
        return redis_store.get(key)

    async def mock_setex(key, seconds, value):
        redis_store[key] = str(value)
        ttls[key] = seconds
        return True

    async def mock_getdel(key):
        ttls.pop(key, None)
        return redis_store.pop(key, None)

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            if key in redis_store:
                del redis_store[key]
                count += 1
        return count

    async def mock_ttl(key):
        return ttls.get(key, -2)

    mock_redis_client.get.side_effect = mock_get
    mock_redis_client.setex.side_effect = mock_setex
    mock_redis_client.getdel.side_effect = mock_getdel
    mock_redis_client.delete.side_effect = mock_delete
    mock_redis_client.ttl.side_effect = mock_ttl
    mock_redis_client.close.return_value = None
    mock_redis_client.store = redis_store

    mock_pool = MagicMock()
    mock_pool.disconnect = AsyncMock()

    with (
        patch("redis.asyncio.connection.ConnectionPool.from_url", return_value=mock_pool),
        patch("redis.asyncio.Redis", return_value=mock_redis_client),
    ):
        # Reset the global _redis_client before each test
        import app.api.core.dependencies.redis_service as redis_module

        redis_module._redis_client = None
        redis_module._connection_pool = None
        yield mock_redis_client
        redis_module._redis_client = None
        redis_module._connection_pool = None


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """
    File-backed SQLite database per test.

    NullPool gives every session its own connection, so services that open
    several sessions concurrently behave like they do against Postgres.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/test.db",
        echo=False,
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await engine.dispose()


@pytest.fixture
def make_user(session_factory):
    """Persist a user, optionally bound to a Stripe account."""

    async def _make_user(
        stripe_account_id: Optional[str] = None,
        is_admin: bool = False,
        email: Optional[str] = None,
    ) -> User:
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            name="Test User",
            stripe_account_id=stripe_account_id,
            is_admin=is_admin,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user

    return _make_user


@pytest_asyncio.fixture
async def client():
    """HTTP client bound to the ASGI app; dependency overrides are cleared afterwards."""
    from httpx import ASGITransport, AsyncClient

    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()
