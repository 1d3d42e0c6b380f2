"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str | None = None

    # Cache / usage counters
    redis_url: str | None = None

    # LLM
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.7
    openai_max_tokens: int = 8000

    # Place photos
    google_maps_api_key: SecretStr | None = None
    places_base_url: str = "https://maps.googleapis.com/maps/api/place"
    photo_max_width: int = 800
    photo_timeout_ms: int = 4000
    photo_fanout_cap: int = 4

    # Enrichment
    min_slot_paragraphs: int = 3
    saved_place_match_score: float = 85.0

    # Usage limits (regenerations per trip member)
    regenerations_per_trip_member: int = 3

    # Image backfill
    backfill_max_updates_per_run: int = 20

    # Client maintenance task
    maintenance_delay_seconds: float = 2.0
    maintenance_retry_count: int = 3
    maintenance_retry_delay_seconds: float = 1.5

    # Client transport
    api_base_url: str = "http://localhost:8000"
    stream_timeout_seconds: float = 120.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
