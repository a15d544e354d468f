"""
Configuration module for the progress sync backend.

The Settings object is built once per process from environment variables.
Store and bot credentials are optional at construction time so that the
application can still boot and answer health checks; request handlers call
``require_runtime()`` which raises ``ConfigurationError`` listing anything
that is missing.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from progress_sync.core.errors import ConfigurationError

DEFAULT_INIT_DATA_MAX_AGE_SECONDS = 7 * 24 * 60 * 60
NON_PRODUCTION_ENVIRONMENTS = frozenset({"local", "test"})


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Credentials required to serve authenticated requests."""

    bot_token: str
    store_url: str
    store_key: str
    init_data_max_age_seconds: int
    store_timeout_seconds: float


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = Field(default="Progress Sync Backend", alias="PROJECT_NAME")
    environment: Literal["local", "test", "staging", "production"] = Field(
        default="local",
        alias="APP_ENV",
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    telegram_bot_token: SecretStr | None = Field(
        default=None,
        alias="TELEGRAM_BOT_TOKEN",
        validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "BOT_TOKEN"),
    )
    supabase_url: str | None = Field(
        default=None,
        alias="SUPABASE_URL",
        validation_alias=AliasChoices("SUPABASE_URL", "SUPABASE_URL_PUBLIC"),
    )
    supabase_service_key: SecretStr | None = Field(
        default=None,
        alias="SUPABASE_SERVICE_KEY",
        validation_alias=AliasChoices("SUPABASE_SERVICE_KEY", "SUPABASE_SERVICE_ROLE"),
    )

    allow_origin: str = Field(
        default="*",
        alias="ALLOW_ORIGIN",
        description="Value of Access-Control-Allow-Origin returned to the Mini App.",
    )
    init_data_max_age_seconds: int = Field(
        default=DEFAULT_INIT_DATA_MAX_AGE_SECONDS,
        alias="INIT_DATA_MAX_AGE_SECONDS",
        description="Maximum accepted age of Telegram initData (auth_date) in seconds.",
    )
    dev_identity_enabled: bool = Field(
        default=False,
        alias="DEV_IDENTITY_ENABLED",
        description="Accept X-Dev-User as identity when initData is absent (local/test only).",
    )
    store_timeout_seconds: float = Field(default=10.0, alias="STORE_TIMEOUT_SECONDS")
    max_request_bytes: int = Field(
        default=1_048_576,
        alias="MAX_REQUEST_BYTES",
        description="Upper bound for request bodies in bytes (default 1 MiB).",
    )

    @field_validator("supabase_url", mode="before")
    @classmethod
    def _strip_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip().rstrip("/")
        return trimmed or None

    @field_validator("telegram_bot_token", "supabase_service_key", mode="before")
    @classmethod
    def _blank_secret_is_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("allow_origin")
    @classmethod
    def _validate_allow_origin(cls, value: str) -> str:
        candidate = value.strip()
        return candidate or "*"

    @field_validator("init_data_max_age_seconds")
    @classmethod
    def _validate_max_age(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("INIT_DATA_MAX_AGE_SECONDS must be a positive integer.")
        return value

    @field_validator("store_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("STORE_TIMEOUT_SECONDS must be positive.")
        return value

    @field_validator("max_request_bytes")
    @classmethod
    def _validate_request_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("MAX_REQUEST_BYTES must be a positive integer.")
        return value

    @model_validator(mode="after")
    def _validate_dev_identity(self) -> "Settings":
        if self.dev_identity_enabled and self.environment not in NON_PRODUCTION_ENVIRONMENTS:
            raise ValueError(
                "DEV_IDENTITY_ENABLED is only allowed when APP_ENV is 'local' or 'test'."
            )
        return self

    @property
    def dev_identity_allowed(self) -> bool:
        """Return True when the X-Dev-User bypass may be honored."""
        return (
            self.dev_identity_enabled
            and self.environment in NON_PRODUCTION_ENVIRONMENTS
        )

    def missing_runtime_variables(self) -> list[str]:
        missing: list[str] = []
        if self.telegram_bot_token is None:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if self.supabase_service_key is None:
            missing.append("SUPABASE_SERVICE_KEY")
        return missing

    def require_runtime(self) -> RuntimeConfig:
        """Return request-time credentials or raise ConfigurationError."""

        bot_token = self.telegram_bot_token
        store_url = self.supabase_url
        store_key = self.supabase_service_key
        if bot_token is None or not store_url or store_key is None:
            joined = ", ".join(sorted(self.missing_runtime_variables()))
            raise ConfigurationError(f"Missing required environment variables: {joined}")

        return RuntimeConfig(
            bot_token=bot_token.get_secret_value(),
            store_url=store_url,
            store_key=store_key.get_secret_value(),
            init_data_max_age_seconds=self.init_data_max_age_seconds,
            store_timeout_seconds=self.store_timeout_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance so configuration is evaluated once."""
    return Settings()


__all__ = ["RuntimeConfig", "Settings", "get_settings"]
