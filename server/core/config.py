"""Environment-driven configuration with Pydantic v2."""

from typing import Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from constants import (
    BASE_RETRY_DELAY,
    MAX_RETRIES,
    MAX_RETRY_DELAY,
    RETRY_BACKOFF_MULTIPLIER,
)


class Settings(BaseSettings):
    """Engine settings driven entirely by WORKFLOW_* environment variables."""

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="console")
    log_file: Optional[str] = Field(default=None)

    # Retry wrapper
    retry_max_attempts: int = Field(default=MAX_RETRIES, ge=1, le=10)
    retry_initial_delay: float = Field(default=BASE_RETRY_DELAY, ge=0.0, le=60.0)
    retry_backoff_multiplier: float = Field(default=RETRY_BACKOFF_MULTIPLIER, ge=1.0, le=10.0)
    retry_max_delay: float = Field(default=MAX_RETRY_DELAY, ge=0.0)

    # Node dispatch
    schedule_delay: float = Field(default=0.0, ge=0.0, le=10.0)  # seconds between Scheduled and Started

    # Script sandbox
    script_timeout: float = Field(default=10.0, ge=0.5, le=300.0)
    script_memory_limit_mb: int = Field(default=512, ge=0)  # 0 disables the limit

    # Orchestrator
    strict_start_node: bool = Field(default=False)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Normalise and check the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = {
        "env_prefix": "WORKFLOW_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
