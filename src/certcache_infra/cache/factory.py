"""Backend factory: validates options and builds a ready-to-use cache."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import structlog
from redis.asyncio import Redis
from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from certcache_core.constants import (
    BACKEND_DIR,
    BACKEND_MEMORY,
    BACKEND_REDIS,
    BACKEND_SQL,
    BACKENDS,
    FALSE_STRINGS,
    REDIS_DEFAULT_DB,
    REDIS_DEFAULT_PORT,
    TRUE_STRINGS,
)
from certcache_core.exceptions import ConfigurationError, ConnectivityError
from certcache_core.interfaces.storage import StorageBackend
from certcache_core.observability import bind_cache_context
from certcache_infra.cache.cert_cache import CertCache
from certcache_infra.cache.cipher import PayloadCipher
from certcache_infra.cache.dir_cache import DirCache
from certcache_infra.cache.memory_cache import MemoryCache
from certcache_infra.cache.redis_cache import RedisCache
from certcache_infra.cache.sql_cache import SQLCacheAdapter

logger = structlog.get_logger()


async def create_cache(options: Mapping[str, str]) -> CertCache:
    """Build a CertCache from a flat option mapping.

    Either returns a fully usable cache or raises; a cache is never built
    around a missing backend.
    """
    use_precaching = parse_bool(options.get("usePrecaching", "false"), "usePrecaching")
    passphrase = options.get("encryptionKey", "")
    cipher = PayloadCipher.from_passphrase(passphrase) if passphrase else None

    backend = await build_backend(options)
    bind_cache_context(
        options["backend"], encrypted=cipher is not None, precaching=use_precaching
    )
    logger.info("cache_ready")
    return CertCache(backend, cipher=cipher, use_precaching=use_precaching)


async def build_backend(options: Mapping[str, str]) -> StorageBackend:
    """Construct the storage backend selected by ``options['backend']``."""
    kind = options.get("backend")
    if not kind:
        raise ConfigurationError("missing required 'backend' option")
    if kind == BACKEND_DIR:
        return build_dir_backend(options)
    if kind == BACKEND_SQL:
        return await build_sql_backend(options)
    if kind == BACKEND_REDIS:
        return await build_redis_backend(options)
    if kind == BACKEND_MEMORY:
        return MemoryCache()
    msg = f"unknown backend {kind!r}, expected one of: {', '.join(BACKENDS)}"
    raise ConfigurationError(msg)


def build_dir_backend(options: Mapping[str, str]) -> DirCache:
    """Directory backend; the directory is created if missing."""
    path = _require(options, "path", BACKEND_DIR)
    try:
        return DirCache(Path(path))
    except OSError as exc:
        raise ConfigurationError(f"cannot create cache directory {path}: {exc}") from exc


async def build_sql_backend(options: Mapping[str, str]) -> SQLCacheAdapter:
    """Open the database, check it answers, select the dialect and ensure the table."""
    driver = _require(options, "driver", BACKEND_SQL)
    dsn = _require(options, "dsn", BACKEND_SQL)
    url = build_sql_url(driver, dsn)

    try:
        engine = create_async_engine(url, echo=False, pool_pre_ping=True)
    except (SQLAlchemyError, ImportError) as exc:
        raise ConfigurationError(f"error establishing database connection: {exc}") from exc

    try:
        await _check_alive(engine)
        adapter = SQLCacheAdapter.for_engine(engine)
        await adapter.ensure_schema()
    except BaseException:
        await engine.dispose()
        raise
    logger.debug("sql_backend_ready", dialect=engine.dialect.name)
    return adapter


def build_sql_url(driver: str, dsn: str) -> URL:
    """Combine ``driver`` and ``dsn`` into a SQLAlchemy URL.

    A dsn that already carries a scheme must name the same database backend.
    """
    raw = dsn if "://" in dsn else f"{driver}://{dsn}"
    try:
        url = make_url(raw)
    except SQLAlchemyError as exc:
        raise ConfigurationError(f"invalid dsn: {exc}") from exc
    if url.get_backend_name() != driver.split("+", 1)[0]:
        msg = f"dsn scheme {url.drivername!r} does not match driver {driver!r}"
        raise ConfigurationError(msg)
    return url


async def build_redis_backend(options: Mapping[str, str]) -> RedisCache:
    """Connect to Redis and verify it answers."""
    addr = _require(options, "addr", BACKEND_REDIS)
    host, port = parse_addr(addr)
    password = options.get("password") or None
    db_option = options.get("db") or str(REDIS_DEFAULT_DB)
    try:
        db = int(db_option)
    except ValueError:
        raise ConfigurationError(f"error parsing db option: {db_option!r}") from None

    client = Redis(host=host, port=port, password=password, db=db)
    backend = RedisCache(client)
    try:
        await backend.ping()
    except BaseException:
        await client.aclose()
        raise
    return backend


def parse_addr(addr: str) -> tuple[str, int]:
    """Split ``host:port``; the port defaults to 6379 and IPv6 hosts use brackets."""
    host, sep, port = addr.rpartition(":")
    if not sep or (host.startswith("[") != host.endswith("]")) or "]" in port:
        return addr.strip("[]"), REDIS_DEFAULT_PORT
    if not host:
        raise ConfigurationError(f"invalid redis addr {addr!r}")
    try:
        return host.strip("[]"), int(port)
    except ValueError:
        raise ConfigurationError(f"invalid port in redis addr {addr!r}") from None


def parse_bool(value: str, option: str) -> bool:
    """Parse a boolean option using the usual true/false spellings."""
    if value in TRUE_STRINGS:
        return True
    if value in FALSE_STRINGS or value == "":
        return False
    raise ConfigurationError(f"option {option!r} must be true or false, got {value!r}")


def _require(options: Mapping[str, str], name: str, kind: str) -> str:
    """Return a non-empty option value or fail construction."""
    value = options.get(name)
    if not value:
        raise ConfigurationError(f"option {name!r} is required for the {kind!r} backend")
    return value


async def _check_alive(engine: AsyncEngine) -> None:
    """Round-trip ``SELECT 1`` to prove the database is reachable."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        raise ConnectivityError(f"error contacting database: {exc}") from exc
