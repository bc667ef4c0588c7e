from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AnyHttpUrl, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables with validation."""

    model_config = SettingsConfigDict(
        env_file=(str(Path(__file__).resolve().parents[1] / ".env"), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    app_name: str = Field(default="Subscription Tracker API", alias="APP_NAME")
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        alias="APP_ENV",
    )
    app_debug: bool = Field(default=False, alias="APP_DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")
    secret_key: SecretStr = Field(
        default=SecretStr("change-me-in-production"),
        alias="SECRET_KEY",
    )
    access_token_ttl_minutes: int = Field(
        default=60 * 24 * 7, ge=1, alias="ACCESS_TOKEN_TTL_MINUTES"
    )

    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ORIGINS",
    )

    database_url: str = Field(
        default="sqlite:///./subscriptions.db",
        alias="DATABASE_URL",
    )

    default_reminder_days: int = Field(default=1, ge=0, le=365, alias="DEFAULT_REMINDER_DAYS")
    reminder_dispatch_enabled: bool = Field(default=True, alias="REMINDER_DISPATCH_ENABLED")
    reminder_poll_seconds: int = Field(default=60, ge=1, le=3600, alias="REMINDER_POLL_SECONDS")
    expo_push_url: AnyHttpUrl = Field(
        default="https://exp.host/--/api/v2/push/send",
        alias="EXPO_PUSH_URL",
    )
    expo_access_token: SecretStr | None = Field(default=None, alias="EXPO_ACCESS_TOKEN")

    @field_validator("api_v1_prefix")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        """Ensure the API prefix starts with a slash and has no trailing slash."""
        normalized = value.strip()
        if not normalized.startswith("/"):
            raise ValueError("API_V1_PREFIX must start with '/'.")
        if len(normalized) > 1 and normalized.endswith("/"):
            normalized = normalized.rstrip("/")
        return normalized

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: str | list[str]) -> list[str]:
        """Support comma-separated CORS origins from environment variables."""
        if isinstance(value, str):
            if not value.strip():
                return []
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        """Validate database URL is a SQLite or PostgreSQL SQLAlchemy connection string."""
        lowered = value.lower()
        if not lowered.startswith(("sqlite://", "postgresql://", "postgresql+psycopg2://")):
            raise ValueError(
                "DATABASE_URL must start with sqlite://, postgresql:// or postgresql+psycopg2://"
            )
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings: Settings = get_settings()
