"""Configuration management backed by pydantic-settings."""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from ``MAPCHECK_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="MAPCHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GPS evidence
    gps_enabled: bool = True
    strict_gps: bool = False
    gps_threshold_ms: int = Field(default=100, ge=0)
    max_depth: Optional[int] = Field(default=None, ge=0)

    # Report contents
    include_path: bool = False
    include_map_name: bool = True

    # Progress
    progress_interval_seconds: float = Field(default=5.0, gt=0)

    # Decoding
    decoder: str = "mapcheck.gbx.decoder:HeaderDecoder"

    # Application
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
