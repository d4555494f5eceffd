"""
Client configuration models and helpers.

Centralizes settings management so the request pipeline, the auth backend
bridge and the controllers share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import logging
import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


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


class ApiSettings(BaseSettings):
    """Configuration for the HandsOn REST API."""

    model_config = SettingsConfigDict(env_prefix="HANDSON_API_", extra="ignore")

    base_url: AnyHttpUrl = Field(
        "http://localhost:4000",
        description="Root URL of the API; request paths already carry /api.",
    )
    timeout_seconds: float = Field(10.0, gt=0)


class AuthBackendSettings(BaseSettings):
    """Settings for the hosted auth/database backend."""

    model_config = SettingsConfigDict(env_prefix="SUPABASE_", extra="ignore")

    url: Optional[AnyHttpUrl] = Field(None, description="Backend project URL.")
    anon_key: Optional[str] = Field(
        None,
        description="Public key sent as the apikey header on every backend call.",
    )
    storage_key: str = Field("handson-auth-token")
    session_db_path: str = Field(
        ".handson/session.db",
        description="SQLite file used to persist the encrypted auth session.",
    )
    refresh_margin_seconds: int = Field(60, ge=0)

    @field_validator("url", "anon_key", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(env_prefix="HANDSON_", extra="ignore")

    token_encryption_secret: Optional[str] = Field(
        None,
        description=(
            "Secret used to derive the symmetric key for encrypting the stored session."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the client."""

    model_config = SettingsConfigDict(
        env_prefix="HANDSON_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="HANDSON_ENV")
    log_level: str = Field("INFO")
    api: ApiSettings = Field(default_factory=ApiSettings)
    auth_backend: AuthBackendSettings = Field(default_factory=AuthBackendSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)

    def missing_configuration(self) -> list[str]:
        """Return the environment variables required by the auth backend that are unset."""
        missing: list[str] = []
        if self.auth_backend.url is None:
            missing.append("SUPABASE_URL")
        if not self.auth_backend.anon_key:
            missing.append("SUPABASE_ANON_KEY")
        return missing

    def report_missing_configuration(self) -> bool:
        """Log absent backend configuration; returns True when everything is present."""
        missing = self.missing_configuration()
        if missing:
            logger.error(
                "Missing auth backend configuration: %s. Check your .env file.",
                ", ".join(missing),
            )
            return False
        return True


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "ApiSettings",
    "AppSettings",
    "AuthBackendSettings",
    "SecuritySettings",
    "get_settings",
]
