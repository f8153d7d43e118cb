"""Relational dialect implementations storing text payloads in one table."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import String, Text, delete, select
from sqlalchemy.dialects import mysql, postgresql
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.expression import Executable

from certcache_core.constants import SQL_KEY_LENGTH, SQL_TABLE_NAME
from certcache_core.exceptions import CacheMissError, ConnectivityError, UnsupportedDriverError


class Base(DeclarativeBase):
    """Base class for cache ORM models."""


class CertEntry(Base):
    """One row per cache key; ``data`` holds base64 text."""

    __tablename__ = SQL_TABLE_NAME

    key: Mapped[str] = mapped_column(String(SQL_KEY_LENGTH), primary_key=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)


class SQLDialectCache(ABC):
    """Text-column store shared by all dialects; subclasses supply the upsert."""

    def __init__(self, engine: AsyncEngine) -> None:
        """Initialize with an async SQLAlchemy engine."""
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        """The engine this dialect talks to."""
        return self._engine

    async def ensure_schema(self) -> None:
        """Create the cache table if it does not exist."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise ConnectivityError(f"creating {SQL_TABLE_NAME}: {exc}") from exc

    async def get(self, key: str) -> str:
        """Return the text stored for key."""
        stmt = select(CertEntry.data).where(CertEntry.key == key)
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                value: str | None = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            raise ConnectivityError(f"select from {SQL_TABLE_NAME}: {exc}") from exc
        if value is None:
            raise CacheMissError(key)
        return value

    async def put(self, key: str, data: str) -> None:
        """Insert or replace the row for key."""
        await self._execute(self.upsert(key, data))

    async def delete(self, key: str) -> None:
        """Delete the row for key; a missing row is not an error."""
        await self._execute(delete(CertEntry).where(CertEntry.key == key))

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self._engine.dispose()

    @abstractmethod
    def upsert(self, key: str, data: str) -> Executable:
        """Build the dialect's insert-or-update statement."""

    async def _execute(self, stmt: Executable) -> None:
        """Run a write statement in its own transaction."""
        try:
            async with self._engine.begin() as conn:
                await conn.execute(stmt)
        except (SQLAlchemyError, OSError) as exc:
            raise ConnectivityError(f"write to {SQL_TABLE_NAME}: {exc}") from exc


_D = TypeVar("_D", bound=type[SQLDialectCache])

# Declared dialect name (``engine.dialect.name``) -> implementation
DIALECTS: dict[str, type[SQLDialectCache]] = {}


def register_dialect(name: str) -> Callable[[_D], _D]:
    """Class decorator registering a dialect under its declared name."""

    def decorator(cls: _D) -> _D:
        DIALECTS[name] = cls
        return cls

    return decorator


def dialect_for(engine: AsyncEngine) -> SQLDialectCache:
    """Instantiate the dialect registered for the engine's declared name."""
    name = engine.dialect.name
    cls = DIALECTS.get(name)
    if cls is None:
        supported = ", ".join(sorted(DIALECTS))
        msg = f"unsupported driver {name!r} (supported: {supported})"
        raise UnsupportedDriverError(msg)
    return cls(engine)


@register_dialect("mysql")
class MySQLCache(SQLDialectCache):
    """MySQL / MariaDB storage."""

    def upsert(self, key: str, data: str) -> Executable:
        """INSERT ... ON DUPLICATE KEY UPDATE."""
        stmt = mysql.insert(CertEntry).values(key=key, data=data)
        return stmt.on_duplicate_key_update(data=stmt.inserted["data"])


@register_dialect("postgresql")
class PostgreSQLCache(SQLDialectCache):
    """PostgreSQL storage."""

    def upsert(self, key: str, data: str) -> Executable:
        """INSERT ... ON CONFLICT (key) DO UPDATE."""
        stmt = postgresql.insert(CertEntry).values(key=key, data=data)
        return stmt.on_conflict_do_update(
            index_elements=[CertEntry.key],
            set_={"data": stmt.excluded["data"]},
        )
