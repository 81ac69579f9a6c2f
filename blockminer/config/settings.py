"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from blockminer.config.business_constants import (
    BLOCK_INTERVAL_SECONDS,
    BLOCK_REWARD,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (for the distributed settlement lock and Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0
    use_redis_lock: bool = Field(
        default=False,
        description=(
            "Guard settlement with a Redis lock shared across processes. "
            "When disabled the lock is local to one scheduler instance."
        ),
    )

    # Block settlement
    block_reward: int = Field(
        default=BLOCK_REWARD,
        gt=0,
        description="Base reward minted per block (whole units)",
    )
    block_interval_seconds: int = Field(
        default=BLOCK_INTERVAL_SECONDS,
        ge=1,
        description="Interval between settlement ticks in seconds",
    )
    settlement_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Abort one settlement if the store does not finish in time",
    )
    settlement_lock_timeout_seconds: int = Field(
        default=120,
        gt=0,
        description="TTL of the distributed settlement lock in seconds",
    )

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/settlement.log"
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Health check HTTP server port"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        allowed = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if level not in allowed:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_lock_outlives_settlement(self) -> "Settings":
        """The lock TTL must cover a full settlement attempt."""
        if self.settlement_lock_timeout_seconds <= self.settlement_timeout_seconds:
            raise ValueError(
                "SETTLEMENT_LOCK_TIMEOUT_SECONDS must be greater than "
                "SETTLEMENT_TIMEOUT_SECONDS"
            )
        return self

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )
            if self.database_url.startswith("sqlite"):
                logger.warning(
                    "DATABASE_URL points to SQLite in production. "
                    "Row-level locking and concurrent writers are not supported."
                )
        return self


settings = Settings()
