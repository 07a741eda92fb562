"""Labeloo application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Labeloo application settings.

    All fields can be overridden via environment variables with
    the LABELOO_ prefix (e.g., LABELOO_BUCKET_ROOT).  One instance is
    built at startup and handed to every service that needs it.
    """

    db_path: Path = Path("data/labeloo.duckdb")
    bucket_root: Path = Path("bucket")
    export_dir: Path = Path("temp")
    export_keep_archives: int | None = Field(20, ge=1)  # None keeps every archive
    public_base_url: str = "http://localhost:8000/bucket"
    ffmpeg_binary: str = "ffmpeg"
    frame_extraction_timeout: float | None = None
    host: str = "0.0.0.0"
    port: int = 8000
    behind_proxy: bool = False  # Set LABELOO_BEHIND_PROXY=true in Docker
    cors_origins: list[str] = ["http://localhost:5173"]
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "LABELOO_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
