"""Abstract storage backend interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """Uniform byte store contract; implementations can be swapped.

    ``get`` raises ``CacheMissError`` for an absent key and any other
    ``CertCacheError`` for storage faults.
    """

    async def get(self, key: str) -> bytes:
        """Retrieve the value stored under key."""
        ...

    async def put(self, key: str, data: bytes) -> None:
        """Store data under key, replacing any previous value."""
        ...

    async def delete(self, key: str) -> None:
        """Remove key; removing an absent key is not an error."""
        ...

    async def close(self) -> None:
        """Release the underlying connection or client."""
        ...
