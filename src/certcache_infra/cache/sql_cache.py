"""Base64 encoding layer over a relational dialect."""

from __future__ import annotations

import base64
import binascii

from sqlalchemy.ext.asyncio import AsyncEngine

from certcache_core.exceptions import EncodingError
from certcache_infra.cache.sql_dialects import SQLDialectCache, dialect_for

_LINE_BREAKS = str.maketrans("", "", "\r\n")


class SQLCacheAdapter:
    """Stores arbitrary bytes in text columns by base64-encoding them.

    The dialect is fixed at construction and never changes afterwards.
    """

    def __init__(self, dialect: SQLDialectCache) -> None:
        """Initialize with the dialect that performs the actual SQL."""
        self._dialect = dialect

    @classmethod
    def for_engine(cls, engine: AsyncEngine) -> SQLCacheAdapter:
        """Select the dialect from the engine's declared dialect name.

        Raises UnsupportedDriverError for dialects with no implementation.
        """
        return cls(dialect_for(engine))

    @property
    def dialect(self) -> SQLDialectCache:
        """The dialect implementation in use."""
        return self._dialect

    async def ensure_schema(self) -> None:
        """Create the backing table when missing."""
        await self._dialect.ensure_schema()

    async def get(self, key: str) -> bytes:
        """Fetch and decode the stored payload.

        Line breaks inside the stored text are ignored, so values wrapped
        by hand still decode.
        """
        encoded = await self._dialect.get(key)
        try:
            raw = encoded.translate(_LINE_BREAKS).encode("ascii")
            return base64.b64decode(raw, validate=True)
        except (UnicodeEncodeError, binascii.Error, ValueError) as exc:
            raise EncodingError(f"stored value for {key!r} is not valid base64: {exc}") from exc

    async def put(self, key: str, data: bytes) -> None:
        """Encode and store the payload."""
        await self._dialect.put(key, base64.b64encode(data).decode("ascii"))

    async def delete(self, key: str) -> None:
        """Delete passes straight through."""
        await self._dialect.delete(key)

    async def close(self) -> None:
        """Release the dialect's engine."""
        await self._dialect.close()
