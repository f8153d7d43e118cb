"""Public interface re-exports for certcache_core."""

from certcache_core.interfaces.storage import StorageBackend

__all__ = [
    "StorageBackend",
]
