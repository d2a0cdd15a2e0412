"""
Configuration settings for fundboard.

Uses Pydantic Settings to load environment variables for the acquisition
endpoints, per-tier timeouts, the cache backend and logging. Values can also
be provided through a local `.env` file.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

TEFAS_COMPARISON_URL = "https://www.tefas.gov.tr/api/DB/BindComparisonFundReturns"


class Settings(BaseSettings):
    # Acquisition endpoints
    proxy_url: str = Field("http://localhost:8000/api/funds", alias="FUNDBOARD_PROXY_URL")
    upstream_url: str = Field(TEFAS_COMPARISON_URL, alias="FUNDBOARD_UPSTREAM_URL")
    relay_prefix: str = Field("https://corsproxy.io/?", alias="FUNDBOARD_RELAY_PREFIX")
    tier_timeout_seconds: float = Field(12.0, gt=0, alias="FUNDBOARD_TIER_TIMEOUT_SECONDS")
    # Total upstream deadline inside the proxy; half the tier timeout when unset.
    proxy_upstream_timeout_seconds: Optional[float] = Field(
        None, gt=0, alias="FUNDBOARD_PROXY_UPSTREAM_TIMEOUT_SECONDS"
    )
    window_days: int = Field(30, gt=0, alias="FUNDBOARD_WINDOW_DAYS")
    strict_categories: bool = Field(True, alias="FUNDBOARD_STRICT_CATEGORIES")

    # Cache store
    cache_backend: Literal["sqlite", "postgres"] = Field("sqlite", alias="FUNDBOARD_CACHE_BACKEND")
    sqlite_path: str = Field("data/funds.db", alias="FUNDBOARD_SQLITE_PATH")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("fundboard", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(5_000, ge=0, alias="DB_STATEMENT_TIMEOUT_MS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def proxy_upstream_budget_seconds(self) -> float:
        if self.proxy_upstream_timeout_seconds is not None:
            return self.proxy_upstream_timeout_seconds
        return self.tier_timeout_seconds / 2


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "TEFAS_COMPARISON_URL", "get_settings"]
