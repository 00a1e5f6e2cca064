"""
Shared test configuration and fixtures.

Provides database setup, session management, a fake Redis session store and an aiohttp test client wired to the
administration application.

By default every test gets its own SQLite database file (through aiosqlite). Set ``TEST_DATABASE_URL`` to an async
PostgreSQL URL to run the same tests against PostgreSQL; tables are created before and dropped after each test.
"""

import os

import fakeredis.aioredis
import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from oauth2_admin.app.config import (
    DatabaseAppKey,
    DatabaseSessionMakerAppKey,
    MetricsClientAppKey,
    RedisClientAppKey,
    Settings,
)
from oauth2_admin.app.csrf import bind_csrf_token
from oauth2_admin.app.metrics import NoOpMetricsClient
from oauth2_admin.app.server import create_app
from oauth2_admin.model.base import Base

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "")

SESSION_ID = "operator-session-1"


def using_sqlite() -> bool:
    return not TEST_DATABASE_URL


@pytest.fixture
def database_url(tmp_path) -> str:
    if TEST_DATABASE_URL:
        return TEST_DATABASE_URL
    return f"sqlite+aiosqlite:///{tmp_path / 'admin.db'}"


@pytest_asyncio.fixture(scope="function")
async def engine(database_url):
    """Create an async SQLAlchemy engine with all tables created."""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    if not using_sqlite():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_maker):
    """A fresh session. Service functions open their own transaction on it."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def fake_redis_client():
    """Provide a fake Redis client for the operator session store."""
    client = fakeredis.aioredis.FakeRedis(decode_responses=False)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def settings(database_url) -> Settings:
    return Settings(
        app_env="production",
        metrics_backend="none",
        pg_dsn=database_url,
    )


@pytest.fixture
def app(settings, engine, session_maker, fake_redis_client):
    app = create_app(settings)
    app[DatabaseAppKey] = engine
    app[DatabaseSessionMakerAppKey] = session_maker
    app[RedisClientAppKey] = fake_redis_client
    app[MetricsClientAppKey] = NoOpMetricsClient()
    return app


@pytest_asyncio.fixture
async def api_client(app):
    async with TestClient(TestServer(app)) as client:
        yield client


@pytest_asyncio.fixture
async def csrf_headers(fake_redis_client, settings):
    """Headers for a state-changing request made from a bound operator session."""
    token = await bind_csrf_token(
        fake_redis_client, settings, SESSION_ID, actor_id="operator@example.com"
    )
    return {
        "Cookie": f"{settings.session_cookie_name}={SESSION_ID}",
        settings.csrf_header_name: token,
    }
