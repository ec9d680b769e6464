"""Centralized application settings using pydantic-settings.

All environment variable reads are consolidated here. Call `get_settings()`
from this module rather than reading os.environ directly.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All env vars are prefixed with NELSONQC_ (case-insensitive).
    """

    model_config = SettingsConfigDict(
        env_prefix="NELSONQC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_version: str = "0.1.0"

    # Server
    host: str = "0.0.0.0"
    port: int = 5000

    # Backing data file (.xlsx, or .csv)
    data_file: Path = Path("qc_data.xlsx")

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Logging
    log_format: str = "console"
    log_level: str = "INFO"

    # File watching
    watch_enabled: bool = True
    watch_poll_interval: float = 0.1
    watch_stability_threshold: float = 0.5

    # WebSocket heartbeat
    heartbeat_interval: int = 30
    heartbeat_timeout: int = 90

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings singleton."""
    return Settings()
