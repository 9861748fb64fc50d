"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.

Credentials (organization id and API token) are deliberately *not* part of the
settings: they are passed explicitly on every public agent-run call.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class AgentApiConfig(BaseModel):
    """Remote agent API tuning (timeouts, retries, rate limiting, caching)."""

    base_url: str = Field(
        default="https://api.codegen.com/v1",
        alias="CODEGEN_API_BASE_URL",
        description="Base URL of the remote agent API",
    )
    timeout_ms: int = Field(default=30000, alias="CODEGEN_TIMEOUT_MS", description="Per-attempt request timeout")
    max_retries: int = Field(default=3, alias="CODEGEN_MAX_RETRIES", description="Retries for transient failures")
    retry_delay_ms: int = Field(default=1000, alias="CODEGEN_RETRY_DELAY_MS", description="Initial backoff delay")
    retry_backoff_factor: float = Field(
        default=2.0, alias="CODEGEN_RETRY_BACKOFF_FACTOR", description="Exponential backoff multiplier"
    )
    rate_limit_requests_per_period: int = Field(
        default=60, alias="CODEGEN_RATE_LIMIT_REQUESTS", description="Requests allowed per rate-limit period"
    )
    rate_limit_period_ms: int = Field(
        default=60000, alias="CODEGEN_RATE_LIMIT_PERIOD_MS", description="Length of the rate-limit window"
    )
    cache_max_size: int = Field(default=128, alias="CODEGEN_CACHE_MAX_SIZE", description="Maximum cached responses")
    cache_ttl_ms: int = Field(default=300000, alias="CODEGEN_CACHE_TTL_MS", description="Cached response lifetime")

    model_config = {"populate_by_name": True}


class PollingConfig(BaseModel):
    """Polling cadence for agent runs."""

    interval_ms: int = Field(
        default=3000, alias="CODEGEN_POLL_INTERVAL_MS", description="Delay between two status polls"
    )
    timeout_ms: Optional[int] = Field(
        default=None,
        alias="CODEGEN_POLL_TIMEOUT_MS",
        description="Upper bound on waiting for a run to finish (unset waits indefinitely)",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =====================================================================
    # Runboard-AI Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Runboard-AI logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="RUNBOARD_AI_LOG_LEVEL",
    )

    # =====================================================================
    # Remote Agent API Configuration
    # =====================================================================
    codegen_api_base_url: str = Field(default="https://api.codegen.com/v1", alias="CODEGEN_API_BASE_URL")
    codegen_timeout_ms: int = Field(default=30000, alias="CODEGEN_TIMEOUT_MS")
    codegen_max_retries: int = Field(default=3, alias="CODEGEN_MAX_RETRIES")
    codegen_retry_delay_ms: int = Field(default=1000, alias="CODEGEN_RETRY_DELAY_MS")
    codegen_retry_backoff_factor: float = Field(default=2.0, alias="CODEGEN_RETRY_BACKOFF_FACTOR")
    codegen_rate_limit_requests: int = Field(default=60, alias="CODEGEN_RATE_LIMIT_REQUESTS")
    codegen_rate_limit_period_ms: int = Field(default=60000, alias="CODEGEN_RATE_LIMIT_PERIOD_MS")
    codegen_cache_max_size: int = Field(default=128, alias="CODEGEN_CACHE_MAX_SIZE")
    codegen_cache_ttl_ms: int = Field(default=300000, alias="CODEGEN_CACHE_TTL_MS")

    # =====================================================================
    # Polling Configuration
    # =====================================================================
    codegen_poll_interval_ms: int = Field(default=3000, alias="CODEGEN_POLL_INTERVAL_MS")
    codegen_poll_timeout_ms: Optional[int] = Field(default=None, alias="CODEGEN_POLL_TIMEOUT_MS")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def agent_api(self) -> AgentApiConfig:
        """Get remote agent API configuration from environment variables."""
        return AgentApiConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def polling(self) -> PollingConfig:
        """Get polling configuration from environment variables."""
        return PollingConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
