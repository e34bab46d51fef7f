"""Application settings and configuration.

This module defines all configuration options for the Autobet Meter service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Autobet Meter", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Balance ledger backend
    ledger_backend: Literal["sql", "redis"] = Field(default="sql", alias="LEDGER_BACKEND")
    database_url: str = Field(default="sqlite:///./autobet.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Vision classifier (OpenAI-compatible chat completions endpoint)
    classifier_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        alias="CLASSIFIER_BASE_URL",
    )
    classifier_api_key: str | None = Field(default=None, alias="OPENROUTER_API_KEY")
    classifier_model: str = Field(default="openai/gpt-4.1", alias="CLASSIFIER_MODEL")
    classifier_fast_model: str = Field(
        default="qwen/qwen3-vl-8b-instruct",
        alias="CLASSIFIER_FAST_MODEL",
    )
    classifier_timeout_seconds: float = Field(default=20.0, alias="CLASSIFIER_TIMEOUT_SECONDS")
    classifier_max_retries: int = Field(default=0, alias="CLASSIFIER_MAX_RETRIES")
    classifier_max_tokens: int = Field(default=256, alias="CLASSIFIER_MAX_TOKENS")

    # Betting cycle shape (seconds)
    cycle_active_seconds: float = Field(default=15.0, alias="CYCLE_ACTIVE_SECONDS")
    cycle_dormant_seconds: float = Field(default=27.0, alias="CYCLE_DORMANT_SECONDS")
    cycle_expiry_seconds: float = Field(default=60.0 * 60, alias="CYCLE_EXPIRY_SECONDS")
    cycle_safety_buffer_seconds: float = Field(
        default=1.0,
        alias="CYCLE_SAFETY_BUFFER_SECONDS",
    )
    remaining_precision: int = Field(default=1, alias="REMAINING_PRECISION")

    # Diagnostic heartbeat for the shared cycle timer
    heartbeat_enabled: bool = Field(default=True, alias="HEARTBEAT_ENABLED")
    heartbeat_interval_seconds: float = Field(default=1.0, alias="HEARTBEAT_INTERVAL_SECONDS")

    # Per-request costs charged against the caller's balance
    cost_check_betting: int = Field(default=1, alias="COST_CHECK_BETTING")
    cost_read_betting: int = Field(default=2, alias="COST_READ_BETTING")
    cost_check_connection: int = Field(default=3, alias="COST_CHECK_CONNECTION")

    # CORS configuration for browser extensions and web clients
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["Content-Type"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )


settings = Settings()
