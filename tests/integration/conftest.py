"""Integration test fixtures: real Postgres and Redis containers."""

from __future__ import annotations

import logging
import socket
import time
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio

# ---------------------------------------------------------------------------
# Service health checks (with retry for CI container start-up)
# ---------------------------------------------------------------------------


def _tcp_reachable(
    host: str,
    port: int,
    timeout: float = 1.0,
    retries: int = 3,
    delay: float = 1.0,
) -> bool:
    """Check if a TCP service is reachable, retrying on failure."""
    for attempt in range(retries):
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError:
            if attempt < retries - 1:
                time.sleep(delay)
    return False


_pg_up = _tcp_reachable("localhost", 5432)
_redis_up = _tcp_reachable("localhost", 6379)

require_postgres = pytest.mark.skipif(
    not _pg_up,
    reason="PostgreSQL not reachable on localhost:5432",
)
require_redis = pytest.mark.skipif(
    not _redis_up,
    reason="Redis not reachable on localhost:6379",
)

PG_DRIVER = "postgresql+asyncpg"
PG_DSN = "postgres:dev@localhost:5432/postgres"
REDIS_ADDR = "localhost:6379"
REDIS_TEST_DB = "1"


# ---------------------------------------------------------------------------
# Redis fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[object, None]:
    """Function-scoped Redis client on test DB 1, flushed before and after each test."""
    if not _redis_up:
        pytest.skip("Redis not available")

    from redis.asyncio import Redis

    client = Redis.from_url(f"redis://{REDIS_ADDR}/{REDIS_TEST_DB}")
    await client.flushdb()
    yield client
    await client.flushdb()
    await client.aclose()


# ---------------------------------------------------------------------------
# Postgres fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def pg_options() -> AsyncGenerator[dict[str, str], None]:
    """Factory options for the test Postgres; the cache table is dropped afterwards."""
    if not _pg_up:
        pytest.skip("PostgreSQL not available")
    pytest.importorskip("asyncpg")

    from sqlalchemy.ext.asyncio import create_async_engine

    from certcache_infra.cache.sql_dialects import Base

    yield {"backend": "sql", "driver": PG_DRIVER, "dsn": PG_DSN}

    engine = create_async_engine(f"{PG_DRIVER}://{PG_DSN}")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# Logging cleanup
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Save and restore root logger handlers."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.level = original_level
