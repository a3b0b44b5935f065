"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.debug and self.log_level.upper() not in ("TRACE", "VERBOSE"):
            self.log_level = "DEBUG"

    # Database
    database_url: str

    # Security
    encryption_key: str

    # CORS
    cors_origins: str = "http://localhost:5173"

    # Application
    debug: bool = False
    log_level: str = "INFO"
    api_v1_str: str = "/api/v1"

    # RM API
    rm_base_url: str = "https://api.rm.smartsheet.com/api/v1"
    rm_request_timeout: float = 30.0

    # Sync
    sync_window_days: int = 7
    sync_stale_after_minutes: int = 30
    sync_rate_limit_per_minute: int = 2

    # Scheduler
    scheduler_enabled: bool = True
    sync_schedule_cron: str = "0 */6 * * *"
    stale_sweep_minutes: int = 10

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
