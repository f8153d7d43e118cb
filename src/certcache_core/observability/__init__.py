"""Observability: structured logging."""

from certcache_core.observability.logging import (
    bind_cache_context,
    clear_cache_context,
    configure_logging,
    redact_secrets,
)

__all__ = [
    "bind_cache_context",
    "clear_cache_context",
    "configure_logging",
    "redact_secrets",
]
