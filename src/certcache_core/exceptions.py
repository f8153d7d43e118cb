"""Custom exception hierarchy for certcache."""

from __future__ import annotations


class CertCacheError(Exception):
    """Base exception for all certcache errors."""


class CacheMissError(CertCacheError):
    """Raised when a key is absent from the cache.

    This is the only sanctioned "entry absent" signal; every wrapping layer
    lets it through unchanged so callers can tell absence from failure.
    """

    def __init__(self, key: str) -> None:
        """Record the missing key."""
        super().__init__(f"cache miss: {key!r}")
        self.key = key


class ConfigurationError(CertCacheError):
    """Raised when a required option is missing or invalid at construction."""


class UnsupportedDriverError(ConfigurationError):
    """Raised when a SQL connection's dialect has no registered implementation."""


class InvalidKeyError(ConfigurationError):
    """Raised when a key cannot be stored by the selected backend."""

    def __init__(self, key: str, reason: str) -> None:
        """Record the rejected key."""
        super().__init__(f"invalid key {key!r}: {reason}")
        self.key = key


class ConnectivityError(CertCacheError):
    """Raised when a backend is unreachable or a storage operation fails."""


class EncodingError(CertCacheError):
    """Raised when SQL-stored data is not valid base64."""


class CryptoError(CertCacheError):
    """Raised on cipher construction failure or corrupted ciphertext."""
