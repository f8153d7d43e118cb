"""Shared pytest fixtures for unit tests."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from structlog.contextvars import clear_contextvars

from certcache_infra.cache import sql_dialects
from tests.mocks.mock_sql import SQLiteTestCache


@pytest.fixture
def sqlite_dialect(monkeypatch: pytest.MonkeyPatch) -> type[SQLiteTestCache]:
    """Register the SQLite test dialect for the duration of one test."""
    monkeypatch.setitem(sql_dialects.DIALECTS, "sqlite", SQLiteTestCache)
    return SQLiteTestCache


@pytest.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with the cache table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'certs.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(sql_dialects.Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Return a not-yet-created directory for the directory backend."""
    return tmp_path / "certs"


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Restore root logger state and drop context bound during the test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.level = original_level
    clear_contextvars()
