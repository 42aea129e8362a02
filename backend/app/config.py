"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Completion API
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None

    # Models per purpose
    chat_model: str = "google/gemini-2.0-flash-thinking-exp:free"
    report_chat_model: str = "google/gemini-2.0-pro-exp-02-05:free"
    summary_model: str = "google/gemini-1.5-pro-latest"
    report_model: str = "google/gemini-1.5-pro-latest"

    # Chat
    chat_timeout_seconds: float = 15.0
    chat_history_limit: int = 10
    chat_max_tokens: int = 1000
    report_chat_max_tokens: int = 800
    stream_idle_timeout_seconds: float = 30.0

    # Report pipeline
    chunk_size_chars: int = 2000
    max_document_chars: int = 50_000
    max_summary_chars: int = 10_000
    chunk_summary_max_tokens: int = 500
    report_max_tokens: int = 1500

    # Processing-state store (seconds)
    report_ttl_seconds: int = 3600
    report_cleanup_interval_seconds: int = 15 * 60
    report_stale_processing_seconds: int = 10 * 60

    # Backends
    redis_url: str | None = None
    database_url: str | None = None
    auto_create_tables: bool = False

    # Documentation content index
    content_dir: str = "content"
    content_chunk_chars: int = 800
    content_search_limit: int = 3

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
