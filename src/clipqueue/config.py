"""Configuration management for clipqueue."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CLIPQUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Scheduler
    # The built-in batch handler is only registered when this is 2 or more.
    concurrency_cap: int = Field(default=1, ge=1)
    tick_interval: float = Field(default=5.0, gt=0)
    gc_interval: float = Field(default=3600.0, gt=0)
    retention_ms: int = Field(default=24 * 60 * 60 * 1000, ge=0)
    batch_poll_interval: float = Field(default=1.0, ge=0)
    default_max_attempts: int = Field(default=3, ge=1)

    # Persistence
    storage_key: str = "video_queue"
    storage_dir: Path | None = Path("./.clipqueue")


# Global settings instance
settings = Settings()
