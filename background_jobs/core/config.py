"""
Scheduler configuration using Pydantic Settings.

Centralizes all tunables with environment variable support
(prefix ``BACKGROUND_JOBS_``, optional ``.env`` file).
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Scheduler settings with environment variable support."""

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False
    logs_dir: str = "logs"

    # Retry / backoff (seconds)
    default_max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    retry_jitter: bool = False
    retry_jitter_max: float = 0.5

    # Duration estimates
    duration_window: int = 5

    # Recurring jobs
    skip_if_running: bool = False

    # Shutdown
    shutdown_drain_timeout: float = 5.0

    class Config:
        env_prefix = "BACKGROUND_JOBS_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars

    @field_validator("default_max_retries", "duration_window")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("retry_base_delay", "retry_max_delay", "shutdown_drain_timeout")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("retry_jitter_max")
    @classmethod
    def jitter_fraction(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("retry_jitter_max must be between 0.0 and 1.0")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
