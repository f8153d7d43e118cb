"""structlog setup for cache processes.

Certificates, private keys and passphrases pass through the cache layers,
so every event goes through :func:`redact_secrets` before it is rendered.
Log output goes to stderr; stdout is left to payloads written by the CLI.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any

import structlog
from structlog.contextvars import bind_contextvars, merge_contextvars, unbind_contextvars

if TYPE_CHECKING:
    from certcache_core.config.settings import CacheSettings

REDACTED = "[redacted]"

# Event fields whose values never reach the output
SECRET_FIELDS = frozenset(
    {"data", "encryptionKey", "encryption_key", "passphrase", "password", "payload"}
)

# Storage driver loggers, held at WARNING or above
DRIVER_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite", "asyncpg", "redis")

CACHE_CONTEXT_FIELDS = ("backend", "encrypted", "precaching")

_HANDLER_NAME = "certcache"


def redact_secrets(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask secret fields and replace raw bytes with their length."""
    for field, value in event_dict.items():
        if field in SECRET_FIELDS:
            event_dict[field] = REDACTED
        elif isinstance(value, (bytes, bytearray, memoryview)):
            event_dict[field] = f"<{len(value)} bytes>"
    return event_dict


def configure_logging(settings: CacheSettings) -> None:
    """Route structlog events and stdlib records through one stderr handler.

    Calling it again replaces the handler installed by the previous call
    and leaves any other root handlers alone.
    """
    level = resolve_level(settings.log_level)
    shared: list[structlog.types.Processor] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]
    renderer: structlog.types.Processor
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared,
        )
    )
    root = logging.getLogger()
    for old in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(level)

    for name in DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def resolve_level(name: str) -> int:
    """Level number for a name in any case; unknown names mean INFO."""
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def bind_cache_context(backend: str, *, encrypted: bool, precaching: bool) -> None:
    """Tag the current task's events with the layers of the cache in use."""
    bind_contextvars(backend=backend, encrypted=encrypted, precaching=precaching)


def clear_cache_context() -> None:
    """Drop the cache tags; other bound context is kept."""
    unbind_contextvars(*CACHE_CONTEXT_FIELDS)
