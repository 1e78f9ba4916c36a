"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/callcenter"
    create_tables: bool = False  # Create missing tables at startup (dev only)

    # Text-classification provider (OpenAI-compatible chat completions)
    ai_api_url: str = "https://api.regolo.ai/v1/chat/completions"
    ai_api_key: str | None = None
    ai_model: str = "DeepSeek-R1-Distill-Qwen-32B"
    ai_timeout_seconds: float = 20.0
    ai_classification_temperature: float = 0.3
    ai_reformulation_temperature: float = 0.2

    # Intake
    code_allocation_max_attempts: int = 50

    # Geocoder (OpenStreetMap Nominatim)
    geocoder_url: str = "https://nominatim.openstreetmap.org/search"
    geocoder_user_agent: str = "callcenter-intake/0.1"
    geocoder_timeout_seconds: float = 5.0
    geocoder_cache_size: int = 1024
    geocoder_cache_ttl_seconds: int = 86400

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60

    # Environment
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
