"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore", # Allow extra env vars without failing
    )

    # App
    app_name: str = "Outage Aggregator"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    port: int = 3000

    # API
    api_prefix: str = "/api/v1"
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Database
    database_url: str = "sqlite+aiosqlite:///./outages.db"
    database_pool_size: int = 5
    database_max_overflow: int = 10
    # Create tables on startup (local SQLite only, production uses Alembic)
    auto_create_tables: bool = False

    # Redis (active-group cache)
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 5.0
    cache_ttl_seconds: int = 3600

    # Aggregation
    # Gap tolerance: an event joins a group if it lands within this many
    # minutes of either boundary.
    merge_window_minutes: int = 60

    # Query pagination
    default_page_size: int = 20
    max_page_size: int = 100


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
