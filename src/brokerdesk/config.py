"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Remote store (PostgREST + GoTrue behind one base URL)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = ""
    REMOTE_TIMEOUT: float = 15.0

    # Locally persisted preferences (settings, role, cache marker)
    REDIS_URL: str = "redis://localhost:6379/0"
    LOCAL_STATE_PREFIX: str = "brokerdesk"

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    def cors_origins(self) -> list[str]:
        """Return CORS origins as a list, splitting the comma-separated setting."""
        return [o.strip() for o in self.CORS_ALLOWED_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
