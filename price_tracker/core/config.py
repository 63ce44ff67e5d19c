# price_tracker/core/config.py
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class Settings(BaseSettings):
    # alerting / scheduling
    alert_threshold_percent: float = Field(20.0, gt=0)
    sweep_interval_hours: float = Field(6.0, gt=0)
    scheduler_enabled: bool = True
    run_sweep_on_startup: bool = False

    # None -> in-memory store
    database_url: Optional[str] = None

    # fetching
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "en-US,en;q=0.5"
    fetch_timeout_seconds: float = Field(25.0, gt=0)
    max_workers: int = Field(8, ge=1)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
