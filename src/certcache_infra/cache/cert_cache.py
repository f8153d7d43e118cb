"""Cache decorator adding at-rest encryption and an in-process precache."""

from __future__ import annotations

import structlog

from certcache_core.interfaces.storage import StorageBackend
from certcache_infra.cache.cipher import PayloadCipher

logger = structlog.get_logger()


class CertCache:
    """Uniform Get/Put/Delete front for any StorageBackend.

    The backend is owned exclusively: ``close()`` closes it. When a cipher
    is configured the backend only ever sees ``iv || ciphertext``. When
    precaching is enabled, plaintext values last seen by this instance are
    served from memory; the precache never holds ciphertext and is never
    invalidated by writes from other processes sharing the backend.

    A get whose backend read overlaps a local put or delete of the same key
    returns what it read but leaves the precache alone, so a value read
    before the write cannot replace the write's effect.
    """

    def __init__(
        self,
        backend: StorageBackend,
        cipher: PayloadCipher | None = None,
        use_precaching: bool = False,
    ) -> None:
        """Wrap a backend with optional encryption and precaching."""
        self._backend = backend
        self._cipher = cipher
        self._use_precaching = use_precaching
        self._precache: dict[str, bytes] = {}
        # Local writes started per key
        self._generations: dict[str, int] = {}

    @property
    def backend(self) -> StorageBackend:
        """The wrapped storage backend."""
        return self._backend

    @property
    def encrypted(self) -> bool:
        """Whether payloads are encrypted before reaching the backend."""
        return self._cipher is not None

    @property
    def use_precaching(self) -> bool:
        """Whether the in-memory precache layer is active."""
        return self._use_precaching

    def precached_keys(self) -> list[str]:
        """Snapshot of keys currently held in the precache."""
        return list(self._precache)

    async def get(self, key: str) -> bytes:
        """Return the plaintext stored under key.

        Raises CacheMissError unchanged from the backend, and CryptoError
        when the stored payload cannot be decrypted.
        """
        if self._use_precaching:
            cached = self._precache.get(key)
            if cached is not None:
                logger.debug("precache_hit", key=key)
                return cached
            logger.debug("precache_miss", key=key)

        generation = self._generations.get(key, 0)
        data = await self._backend.get(key)
        if self._cipher is not None:
            data = self._cipher.decrypt(data)

        if self._use_precaching:
            if self._generations.get(key, 0) == generation:
                self._precache[key] = data
            else:
                logger.debug("precache_fill_skipped", key=key)
        return data

    async def put(self, key: str, data: bytes) -> None:
        """Store data under key; the precache changes only if the backend write succeeds."""
        payload = self._cipher.encrypt(data) if self._cipher is not None else data
        if self._use_precaching:
            self._advance(key)
        await self._backend.put(key, payload)
        if self._use_precaching:
            self._precache[key] = bytes(data)
            logger.debug("precache_fill", key=key)

    async def delete(self, key: str) -> None:
        """Evict key from the precache, then delete it from the backend.

        Eviction happens even when the backend delete fails afterwards.
        """
        if self._use_precaching:
            self._advance(key)
            if self._precache.pop(key, None) is not None:
                logger.debug("precache_evict", key=key)
        await self._backend.delete(key)

    async def close(self) -> None:
        """Drop precached values and close the backend."""
        self._precache.clear()
        self._generations.clear()
        await self._backend.close()

    def _advance(self, key: str) -> None:
        self._generations[key] = self._generations.get(key, 0) + 1
