"""Tests for CacheSettings configuration."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from certcache_core.config.settings import CacheSettings


def _env(**values: str) -> dict[str, str]:
    """Prefix keys with CERTCACHE_."""
    return {f"CERTCACHE_{key.upper()}": value for key, value in values.items()}


@pytest.mark.unit
class TestCacheSettings:
    """Test CacheSettings validation and defaults."""

    def test_defaults_with_path(self, tmp_path: Path) -> None:
        """Directory backend with layers off by default."""
        with patch.dict(os.environ, _env(path=str(tmp_path)), clear=False):
            s = CacheSettings()
        assert s.backend == "dir"
        assert s.use_precaching is False
        assert s.encryption_key is None
        assert s.db == 0
        assert s.log_format == "console"

    def test_dir_without_path_raises(self) -> None:
        """The directory backend needs a path."""
        with pytest.raises(ValidationError, match="dir backend requires: path"):
            CacheSettings(backend="dir", path=None)

    def test_sql_requires_driver_and_dsn(self) -> None:
        """Both SQL fields are reported when missing."""
        with pytest.raises(ValidationError, match="driver, dsn"):
            CacheSettings(backend="sql")

    def test_redis_requires_addr(self) -> None:
        """The Redis backend needs an address."""
        with pytest.raises(ValidationError, match="addr"):
            CacheSettings(backend="redis")

    def test_unknown_backend_rejected(self) -> None:
        """Only known backend kinds validate."""
        with pytest.raises(ValidationError):
            CacheSettings(backend="memcached")  # type: ignore[arg-type]

    def test_env_loading(self) -> None:
        """Fields load from prefixed environment variables."""
        env = _env(
            backend="redis",
            addr="cache.internal:6379",
            db="3",
            use_precaching="true",
            encryption_key="s3cret",
        )
        with patch.dict(os.environ, env, clear=False):
            s = CacheSettings()
        assert s.addr == "cache.internal:6379"
        assert s.db == 3
        assert s.use_precaching is True
        assert s.encryption_key is not None
        assert s.encryption_key.get_secret_value() == "s3cret"

    def test_secrets_hidden_in_repr(self) -> None:
        """Passphrase and password never appear in repr."""
        s = CacheSettings(
            backend="redis", addr="localhost", password="hunter2", encryption_key="s3cret"
        )
        assert "hunter2" not in repr(s)
        assert "s3cret" not in repr(s)


@pytest.mark.unit
class TestAsOptions:
    """Rendering settings into the factory's option mapping."""

    def test_dir_options(self, tmp_path: Path) -> None:
        """Directory settings map to path and layer flags."""
        s = CacheSettings(backend="dir", path=tmp_path, use_precaching=True)
        assert s.as_options() == {
            "backend": "dir",
            "path": str(tmp_path),
            "usePrecaching": "true",
            "encryptionKey": "",
        }

    def test_sql_options(self) -> None:
        """SQL settings map to driver and dsn."""
        s = CacheSettings(
            backend="sql",
            driver="postgresql+asyncpg",
            dsn="postgres:dev@localhost:5432/certs",
            encryption_key="testkey",
        )
        options = s.as_options()
        assert options["driver"] == "postgresql+asyncpg"
        assert options["dsn"] == "postgres:dev@localhost:5432/certs"
        assert options["encryptionKey"] == "testkey"
        assert options["usePrecaching"] == "false"

    def test_redis_options(self) -> None:
        """Redis settings include db and the optional password."""
        s = CacheSettings(backend="redis", addr="localhost:6379", db=2, password="pw")
        options = s.as_options()
        assert options["addr"] == "localhost:6379"
        assert options["db"] == "2"
        assert options["password"] == "pw"

    def test_redis_without_password(self) -> None:
        """No password option is emitted when none is configured."""
        s = CacheSettings(backend="redis", addr="localhost")
        assert "password" not in s.as_options()

    def test_memory_options(self) -> None:
        """The memory backend carries only the layer flags."""
        s = CacheSettings(backend="memory")
        assert set(s.as_options()) == {"backend", "usePrecaching", "encryptionKey"}
