"""Application settings using pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Central configuration for the certificate cache."""

    model_config = SettingsConfigDict(env_prefix="CERTCACHE_", env_file=".env")

    # --- Backend selection ---
    backend: Literal["dir", "sql", "redis", "memory"] = Field(
        default="dir",
        description="Storage backend: 'dir', 'sql', 'redis' or 'memory'",
    )

    # --- Directory backend ---
    path: Path | None = Field(
        default=None,
        description="Certificate directory, created if missing (dir backend)",
    )

    # --- SQL backend ---
    driver: str | None = Field(
        default=None,
        description="SQLAlchemy async driver, e.g. 'postgresql+asyncpg' (sql backend)",
    )
    dsn: str | None = Field(
        default=None,
        description="Connection string appended to the driver (sql backend)",
    )

    # --- Redis backend ---
    addr: str | None = Field(
        default=None,
        description="Redis address as host:port (redis backend)",
    )
    password: SecretStr | None = Field(
        default=None,
        description="Redis password (optional)",
    )
    db: int = Field(
        default=0,
        description="Redis logical database index",
    )

    # --- Cache layers ---
    use_precaching: bool = Field(
        default=False,
        description="Keep decrypted values in process memory",
    )
    encryption_key: SecretStr | None = Field(
        default=None,
        description="Passphrase enabling at-rest encryption; empty disables it",
    )

    # --- Logging ---
    log_level: str = Field(
        default="INFO",
        description="Root log level",
    )
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log renderer",
    )

    @model_validator(mode="after")
    def validate_backend_config(self) -> CacheSettings:
        """Require the options the selected backend cannot work without."""
        required: dict[str, tuple[str, ...]] = {
            "dir": ("path",),
            "sql": ("driver", "dsn"),
            "redis": ("addr",),
            "memory": (),
        }
        missing = [name for name in required[self.backend] if not getattr(self, name)]
        if missing:
            msg = f"{self.backend} backend requires: {', '.join(missing)}"
            raise ValueError(msg)
        return self

    def as_options(self) -> dict[str, str]:
        """Render the flat option mapping consumed by the cache factory."""
        options: dict[str, str] = {
            "backend": self.backend,
            "usePrecaching": "true" if self.use_precaching else "false",
            "encryptionKey": (
                self.encryption_key.get_secret_value() if self.encryption_key else ""
            ),
        }
        if self.backend == "dir" and self.path is not None:
            options["path"] = str(self.path)
        elif self.backend == "sql":
            options["driver"] = self.driver or ""
            options["dsn"] = self.dsn or ""
        elif self.backend == "redis":
            options["addr"] = self.addr or ""
            options["db"] = str(self.db)
            if self.password is not None:
                options["password"] = self.password.get_secret_value()
        return options
