"""Application configuration settings."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseSettings):
    """Synchronization engine configuration."""

    plan_concurrency: int = Field(default=4, ge=1, description="Concurrent tree comparisons")
    copy_concurrency: int = Field(default=4, ge=1, description="Concurrent file copies")
    chunk_size: int = Field(default=1024 * 1024, ge=1, description="Copy buffer size in bytes")

    model_config = SettingsConfigDict(env_prefix="TREESYNC_SYNC_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: Literal["console", "json"] = Field(default="console")
    file_path: Optional[str] = Field(default=None)

    model_config = SettingsConfigDict(env_prefix="TREESYNC_LOG_")


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="treesync")
    version: str = Field(default="1.0.0")
    environment: str = Field(default="development")

    # Sub-settings
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix="TREESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = AppSettings()


def get_settings() -> AppSettings:
    """Get application settings."""
    return settings
