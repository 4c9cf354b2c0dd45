"""Runtime settings for the Fund Overlap Analyzer."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings sourced from environment variables."""

    api_url: str = Field(
        default="http://localhost:3002",
        description="Base URL of the fund-data API, with or without a trailing /api.",
    )
    holdings_limit: int = Field(default=15, description="Top-N holdings requested per fund.")
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=1.0, ge=0, description="Initial retry delay in seconds.")
    timeout: Optional[float] = Field(
        default=None, description="Total request timeout in seconds; aiohttp default when unset."
    )
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FUND_",
        extra="ignore",
    )

    @property
    def api_base(self) -> str:
        """API origin with any trailing ``/api`` and slash removed."""
        base = self.api_url.rstrip("/")
        if base.endswith("/api"):
            base = base[: -len("/api")]
        return base.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Cached accessor so we only load settings once per process."""
    return Settings()
