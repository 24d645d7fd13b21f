"""
ITDA — Application Configuration

Loads all configuration from environment variables (and an optional .env file)
using Pydantic Settings.  A cached ``get_settings()`` helper is provided so that
FastAPI dependency-injection (and any other call-site) always receives the same
validated instance without re-parsing the environment on every request.
"""

from __future__ import annotations

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the ITDA marketplace backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Database – Supabase Postgres
    # ------------------------------------------------------------------ #
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 5

    # ------------------------------------------------------------------ #
    # Redis – worker lease + health
    # ------------------------------------------------------------------ #
    REDIS_URL: str = "redis://localhost:6379/0"

    # ------------------------------------------------------------------ #
    # Supabase Auth (session tokens are HS256 JWTs)
    # ------------------------------------------------------------------ #
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_AUDIENCE: str = "authenticated"

    # ------------------------------------------------------------------ #
    # Swipe policy
    # ------------------------------------------------------------------ #
    DAILY_SWIPE_LIMIT: int = 10
    SWIPE_TIMEZONE: str = "Asia/Seoul"
    QUEUE_SIZE: int = 10
    QUEUE_CATEGORY_SHARE: float = 0.7
    QUEUE_CANDIDATE_POOL: int = 200

    # ------------------------------------------------------------------ #
    # Pricing
    # ------------------------------------------------------------------ #
    PRICE_ROUNDING_STEP: int = 10_000
    DEFAULT_CAMPAIGN_BUDGET: int = 5_000_000

    # ------------------------------------------------------------------ #
    # Push gateway (device fan-out collaborator)
    # ------------------------------------------------------------------ #
    PUSH_GATEWAY_URL: str = ""
    PUSH_GATEWAY_TOKEN: str = ""
    PUSH_TIMEOUT_SECONDS: float = 10.0

    # ------------------------------------------------------------------ #
    # Digest notification worker
    # ------------------------------------------------------------------ #
    BATCH_WORKER_POLL_SECONDS: float = 30.0
    BATCH_WORKER_BATCH_SIZE: int = 50
    BATCH_WORKER_LEASE_SECONDS: int = 120

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ------------------------------------------------------------------ #
    # CORS
    # ------------------------------------------------------------------ #
    ALLOWED_ORIGINS: str = "*"

    # ------------------------------------------------------------------ #
    # Derived helpers
    # ------------------------------------------------------------------ #
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list split on commas."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def swipe_tz(self) -> ZoneInfo:
        return ZoneInfo(self.SWIPE_TIMEZONE)

    @property
    def push_enabled(self) -> bool:
        return bool(self.PUSH_GATEWAY_URL)

    @field_validator("QUEUE_CATEGORY_SHARE")
    @classmethod
    def _share_must_be_between_0_and_1(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Share must be between 0 and 1, got {v}")
        return v

    @field_validator(
        "DAILY_SWIPE_LIMIT", "QUEUE_SIZE", "QUEUE_CANDIDATE_POOL", "PRICE_ROUNDING_STEP"
    )
    @classmethod
    def _must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v

    @field_validator("SWIPE_TIMEZONE")
    @classmethod
    def _timezone_must_exist(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {v!r}") from exc
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, validated ``Settings`` instance.

    Using ``@lru_cache`` guarantees the .env file is read and validated
    exactly once per process lifetime.  Import this function anywhere you
    need access to configuration::

        from app.config import get_settings
        settings = get_settings()
    """
    return Settings()  # type: ignore[call-arg]
