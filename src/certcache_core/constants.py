"""Shared constants for certcache."""

from __future__ import annotations

# Backend selectors accepted by the factory
BACKEND_DIR = "dir"
BACKEND_SQL = "sql"
BACKEND_REDIS = "redis"
BACKEND_MEMORY = "memory"

BACKENDS = (BACKEND_DIR, BACKEND_SQL, BACKEND_REDIS, BACKEND_MEMORY)

# Key derivation parameters; changing any of them makes stored data unreadable
KDF_ITERATIONS = 1048
KDF_KEY_LENGTH = 32
KDF_PASSWORD_SLICE = slice(0, 15)
KDF_SALT_SLICE = slice(16, 32)

# AES block length, also the IV length prepended to every payload
CIPHER_BLOCK_SIZE = 16

# Relational storage
SQL_TABLE_NAME = "autocert_cache"
SQL_KEY_LENGTH = 255

# Redis defaults
REDIS_DEFAULT_PORT = 6379
REDIS_DEFAULT_DB = 0

# Spellings accepted for boolean options
TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
