"""
Configuration management using pydantic-settings.

Loads settings from environment variables and .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CLAIMS_",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Storage Configuration
    storage_backend: str = Field(
        default="sqlite",
        description="Claim storage backend: 'sqlite' or 'memory'",
    )
    database_path: Path = Field(
        default=Path("data") / "claims.db",
        description="SQLite database file",
    )
    uploads_dir: Path = Field(
        default=Path("uploads"),
        description="Directory where processed damage photos are written",
    )

    # Upload Configuration
    max_upload_size: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum size of a single uploaded photo in bytes (10MB)",
    )
    max_files_per_upload: int = Field(
        default=10,
        description="Maximum number of photos in one upload request",
    )
    max_image_pixels: int = Field(
        default=50_000_000,
        description="Uploads whose decoded width x height exceeds this are rejected",
    )
    image_max_width: int = Field(default=1200, description="Stored photos fit within this width")
    image_max_height: int = Field(default=900, description="Stored photos fit within this height")
    jpeg_quality: int = Field(default=85, ge=1, le=95, description="JPEG re-encode quality")

    @property
    def image_bounds(self) -> tuple[int, int]:
        """(width, height) box stored photos are resized to fit within."""
        return (self.image_max_width, self.image_max_height)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-reading environment on every call.
    """
    return Settings()
