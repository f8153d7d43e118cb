"""In-memory implementation of StorageBackend."""

from __future__ import annotations

from certcache_core.exceptions import CacheMissError


class MemoryCache:
    """Process-local backend holding values in a dict."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes:
        """Retrieve a value by key."""
        try:
            return self._data[key]
        except KeyError:
            raise CacheMissError(key) from None

    async def put(self, key: str, data: bytes) -> None:
        """Store a value."""
        self._data[key] = bytes(data)

    async def delete(self, key: str) -> None:
        """Delete a key if present."""
        self._data.pop(key, None)

    async def close(self) -> None:
        """Discard all values."""
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)
