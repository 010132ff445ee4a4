"""
Pytest configuration and fixtures.
"""

from typing import AsyncGenerator, Dict, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.core.database import build_session_maker
from backend.app.core.init_db import create_tables, drop_tables
from backend.app.services.aggregation_engine import AggregationEngine
from backend.app.services.group_cache import ActiveGroupCache
from backend.app.services.group_store import GroupStore

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class InMemoryRedis:
    """
    Stand-in for the redis.asyncio client calls the cache and health check make.
    Failure flags simulate an unreachable server.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.set_calls = 0
        self.fail_reads = False
        self.fail_writes = False
        self.fail_ping = False

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise RedisConnectionError("Connection refused")
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        if self.fail_writes:
            raise RedisConnectionError("Connection refused")
        self.set_calls += 1
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def ping(self) -> bool:
        if self.fail_ping:
            raise RedisConnectionError("Connection refused")
        return True

    async def aclose(self) -> None:
        pass


@pytest.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await drop_tables(engine)
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return build_session_maker(db_engine)


@pytest.fixture(scope="function")
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture(scope="function")
def store(session_factory) -> GroupStore:
    return GroupStore(session_factory)


@pytest.fixture(scope="function")
def cache(fake_redis) -> ActiveGroupCache:
    return ActiveGroupCache(fake_redis)


@pytest.fixture(scope="function")
def aggregation_engine(store, cache) -> AggregationEngine:
    return AggregationEngine(store, cache)


@pytest.fixture(scope="function")
async def client(db_engine, session_factory, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client wired to the in-memory database and cache.
    ASGITransport does not run the lifespan, so app.state is filled here.
    """
    app.state.engine = db_engine
    app.state.session_maker = session_factory
    app.state.redis_client = fake_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    app.state.redis_client = None
