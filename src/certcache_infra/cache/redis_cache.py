"""Redis-backed implementation of StorageBackend."""

from __future__ import annotations

from redis.asyncio import Redis
from redis.exceptions import RedisError

from certcache_core.exceptions import CacheMissError, ConnectivityError


class RedisCache:
    """Persistent cache backed by Redis, one raw-bytes value per key."""

    def __init__(self, redis: Redis) -> None:  # type: ignore[type-arg]
        """Initialize with a redis-py asyncio client."""
        self._redis = redis

    async def ping(self) -> None:
        """Verify the server answers; used as the construction-time liveness check."""
        try:
            await self._redis.ping()
        except (RedisError, OSError) as exc:
            raise ConnectivityError(f"error contacting redis: {exc}") from exc

    async def get(self, key: str) -> bytes:
        """Retrieve a value by key."""
        try:
            value = await self._redis.get(key)
        except (RedisError, OSError) as exc:
            raise ConnectivityError(f"redis GET failed: {exc}") from exc
        if value is None:
            raise CacheMissError(key)
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)

    async def put(self, key: str, data: bytes) -> None:
        """Store a value without expiry."""
        try:
            await self._redis.set(name=key, value=data)
        except (RedisError, OSError) as exc:
            raise ConnectivityError(f"redis SET failed: {exc}") from exc

    async def delete(self, key: str) -> None:
        """Delete a key from the cache."""
        try:
            await self._redis.delete(key)
        except (RedisError, OSError) as exc:
            raise ConnectivityError(f"redis DEL failed: {exc}") from exc

    async def close(self) -> None:
        """Close the client's connection pool."""
        await self._redis.aclose()
