from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Virtual Payment Service"
    database_url: str = "sqlite:///ledger.db"
    log_level: str = "INFO"
    log_format: str = "standard"

    transfer_timeout_seconds: Optional[float] = Field(default=5.0, gt=0)
    allow_overdraft: bool = False
    reject_mismatched_replays: bool = False

    seed_accounts: dict[str, int] = Field(
        default_factory=lambda: {"user_a": 100, "user_b": 0}
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LEDGER_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
