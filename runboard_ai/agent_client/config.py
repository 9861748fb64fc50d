from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from runboard_ai.core.config import Settings

DEFAULT_BASE_URL = "https://api.codegen.com/v1"
DEFAULT_USER_AGENT = "runboard-ai-python-client/0.1.0"


class ClientConfig(BaseModel):
    """Configuration for one `AsyncAgentApiClient` (one organization + token)."""

    api_token: str = Field(..., min_length=1, description="Bearer token for the remote agent API.")
    org_id: str = Field(..., min_length=1, description="Organization the runs belong to.", examples=["323"])
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Base URL of the remote agent API.")
    timeout_ms: int = Field(default=30000, ge=1, description="Per-attempt request timeout (milliseconds).")
    max_retries: int = Field(default=3, ge=0, description="Retries for network failures and HTTP 5xx.")
    retry_delay_ms: int = Field(default=1000, ge=0, description="Backoff before the first retry (milliseconds).")
    retry_backoff_factor: float = Field(default=2.0, ge=1.0, description="Multiplier applied per retry.")
    poll_interval_ms: int = Field(default=3000, ge=0, description="Delay between two run status polls.")
    rate_limit_requests_per_period: int = Field(default=60, ge=1, description="Requests allowed per window.")
    rate_limit_period_ms: int = Field(default=60000, ge=1, description="Length of the rate-limit window.")
    enable_caching: bool = Field(default=True, description="Cache successful GET responses flagged cacheable.")
    cache_max_size: int = Field(default=128, ge=1, description="Maximum number of cached responses.")
    cache_ttl_ms: int = Field(default=300000, ge=0, description="Lifetime of a cached response.")
    enable_metrics: bool = Field(default=True, description="Record one metrics sample per request attempt.")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @staticmethod
    def from_settings(
        org_id: str,
        api_token: str,
        settings: Settings,
        *,
        poll_interval_ms: Optional[int] = None,
    ) -> "ClientConfig":
        api = settings.agent_api
        return ClientConfig(
            api_token=api_token,
            org_id=org_id,
            base_url=api.base_url,
            timeout_ms=api.timeout_ms,
            max_retries=api.max_retries,
            retry_delay_ms=api.retry_delay_ms,
            retry_backoff_factor=api.retry_backoff_factor,
            poll_interval_ms=poll_interval_ms if poll_interval_ms is not None else settings.polling.interval_ms,
            rate_limit_requests_per_period=api.rate_limit_requests_per_period,
            rate_limit_period_ms=api.rate_limit_period_ms,
            cache_max_size=api.cache_max_size,
            cache_ttl_ms=api.cache_ttl_ms,
        )
