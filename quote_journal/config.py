"""
Configuration for the Quote Journal service.

Values come from environment variables (or a local ``.env`` file). Nothing
here is required at import time; components check for the settings they need
when they are first used.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Application
    app_name: str = "Quote Journal"
    app_version: str = "0.1.0"
    app_url: str = "http://localhost:8000"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Journal store
    mongodb_uri: str = ""
    mongodb_db: str = ""

    # Quote provider
    quotes_api_url: str = "https://zenquotes.io/api/quotes"
    quote_batch_size: int = 50
    quote_cache_ttl: float = 2 * 60 * 60
    quote_timeout: float = 15.0

    # Mood analysis
    openrouter_api_key: str = ""
    openrouter_api_url: str = "https://openrouter.ai/api/v1/chat/completions"
    mood_primary_model: str = "google/gemini-2.0-flash-exp:free"
    mood_fallback_model: str = "google/gemini-2.5-pro"
    mood_timeout: float = 15.0

    # Rate limiting for mood analysis
    rate_limit_window: float = 60.0
    rate_limit_max_requests: int = 10

    # Author biographies
    wikipedia_base_url: str = "https://en.wikipedia.org"
    wikipedia_timeout: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
