"""
Application configuration models and helpers.

Centralizes settings management so the HTTP service, the credential manager
and the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class DatabaseSettings(BaseSettings):
    """Connection settings for the persistent token store."""

    model_config = SettingsConfigDict(extra="ignore")

    database_url: str = Field(..., validation_alias="DATABASE_URL")
    pool_size: int = Field(5, validation_alias="DATABASE_POOL_SIZE")
    max_overflow: int = Field(10, validation_alias="DATABASE_MAX_OVERFLOW")

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_scheme(cls, value):
        """Pin driverless PostgreSQL URLs (including postgres://) to psycopg2."""
        if isinstance(value, str):
            for scheme in ("postgres://", "postgresql://"):
                if value.startswith(scheme):
                    return "postgresql+psycopg2://" + value[len(scheme):]
        return value


class MagentoSettings(BaseSettings):
    """Identity and endpoint configuration for the Magento REST API."""

    model_config = SettingsConfigDict(extra="ignore")

    base_url: AnyHttpUrl = Field(
        "https://woodstockoutlet.com/rest/V1",
        validation_alias="MAGENTO_BASE_URL",
    )
    token_url: AnyHttpUrl = Field(
        "https://woodstockoutlet.com/rest/all/V1/integration/admin/token",
        validation_alias="MAGENTO_TOKEN_URL",
    )
    username: str = Field(..., validation_alias="MAGENTO_USERNAME")
    password: str = Field(..., validation_alias="MAGENTO_PASSWORD")
    service_name: str = Field("magento_api", validation_alias="MAGENTO_SERVICE_NAME")
    token_ttl_minutes: int = Field(
        50,
        validation_alias="MAGENTO_TOKEN_TTL_MINUTES",
        description=(
            "Lifetime recorded for cached tokens. Magento admin tokens live for 60 "
            "minutes; the default keeps a 10 minute safety margin."
        ),
    )
    verify_tls: bool = Field(
        True,
        validation_alias="MAGENTO_VERIFY_TLS",
        description="Disable only for hosts with self-signed certificates.",
    )
    timeout_seconds: float = Field(10.0, validation_alias="MAGENTO_TIMEOUT_SECONDS")

    @field_validator("username", "password")
    @classmethod
    def _require_credentials(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("MAGENTO_USERNAME and MAGENTO_PASSWORD are required")
        return value

    @field_validator("token_ttl_minutes")
    @classmethod
    def _positive_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Token lifetime must be a positive number of minutes")
        return value


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    magento: MagentoSettings = Field(default_factory=MagentoSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "MagentoSettings",
    "SecuritySettings",
    "get_settings",
]
