from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, AsyncIterator, Dict, Optional, Type, TypeVar
from uuid import uuid4

import httpx
from pydantic import BaseModel, ValidationError

from runboard_ai.core.monitoring import log_api_request

from .cache import ResponseCache, make_cache_key
from .cancel import CancelToken, guarded
from .config import ClientConfig
from .errors import (
    AgentApiError,
    AuthenticationError,
    InvalidRequestError,
    MalformedResponseError,
    RetriesExhaustedError,
    RunNotFoundError,
    TransientApiError,
)
from .metrics import MetricsCollector
from .rate_limiter import Clock, RateLimiter, Sleep
from .schemas.dto import (
    AgentRunLog,
    AgentRunLogsPage,
    AgentRunsPage,
    CreateAgentRunRequest,
    RemoteRunRecord,
    ResumeAgentRunRequest,
)

M = TypeVar("M", bound=BaseModel)

DEFAULT_RETRY_AFTER_S = 60.0
PAGE_SIZE = 100


def _validation_message(e: ValidationError) -> str:
    msg = str(e.errors()[0].get("msg", "Invalid request")) if e.errors() else "Invalid request"
    return msg.removeprefix("Value error, ")


def _check_pagination(skip: int, limit: int) -> None:
    if skip < 0:
        raise InvalidRequestError("skip must be >= 0")
    if not 1 <= limit <= 100:
        raise InvalidRequestError("limit must be between 1 and 100")


class AsyncAgentApiClient:
    """
    Resilient async HTTP client for the remote agent API.

    Responsibilities:
    - authenticate every call with the organization's bearer token
    - keep at most ``rate_limit_requests_per_period`` attempts per rolling window
    - absorb HTTP 429 by honoring ``Retry-After`` (never consumes retry budget)
    - retry network failures and HTTP 5xx with exponential backoff
    - fail fast on 401/404/other 4xx and on malformed bodies
    - cache cacheable GETs with a TTL and record per-attempt metrics

    Every suspension point honors an optional `CancelToken`.

    Note: one client belongs to one ``(org_id, api_token)`` pair; its limiter,
    cache and metrics are never shared with another pair.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self._http = client or httpx.AsyncClient(timeout=config.timeout_ms / 1000, follow_redirects=True)
        self._owns_http = client is None
        self._clock = clock
        self._sleep = sleep
        self._rate_limiter = RateLimiter(
            config.rate_limit_requests_per_period,
            config.rate_limit_period_ms,
            clock=clock,
            sleep=sleep,
        )
        self._cache: Optional[ResponseCache[Any]] = (
            ResponseCache(config.cache_max_size, config.cache_ttl_ms, clock=clock) if config.enable_caching else None
        )
        self._metrics: Optional[MetricsCollector] = MetricsCollector(clock=clock) if config.enable_metrics else None
        self._logger = logging.getLogger(__name__)
        self._logger.debug("Initialized AsyncAgentApiClient with base URL: %s", config.base_url)

    async def __aenter__(self) -> "AsyncAgentApiClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def cache(self) -> Optional[ResponseCache[Any]]:
        return self._cache

    @property
    def metrics(self) -> Optional[MetricsCollector]:
        return self._metrics

    # ------------------------------------------------------------------
    # Core request loop
    # ------------------------------------------------------------------

    def _url(self, endpoint: str) -> str:
        # User and organization listing endpoints are not scoped to the org
        if endpoint.startswith("/users") or endpoint.startswith("/organizations"):
            return f"{self.config.base_url}{endpoint}"
        return f"{self.config.base_url}/organizations/{self.config.org_id}{endpoint}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_token}",
            "Content-Type": "application/json",
            "User-Agent": self.config.user_agent,
        }

    def _record(
        self, method: str, endpoint: str, status_code: int, latency_ms: float, request_id: str, cached: bool = False
    ) -> None:
        if self._metrics is not None:
            self._metrics.record(method, endpoint, status_code, latency_ms, request_id, cached=cached)
        log_api_request(method, endpoint, status_code, latency_ms, cached=cached)

    @staticmethod
    def _retry_after_seconds(response: httpx.Response) -> float:
        raw = response.headers.get("Retry-After")
        if not raw:
            return DEFAULT_RETRY_AFTER_S
        try:
            return max(float(raw), 0.0)
        except ValueError:
            pass
        try:
            when = parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            return DEFAULT_RETRY_AFTER_S
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)

    def _interpret(self, response: httpx.Response, endpoint: str) -> Any:
        status = response.status_code
        if status == 401:
            raise AuthenticationError(details=response.text)
        if status == 404:
            raise RunNotFoundError(endpoint, details=response.text)
        if status >= 500:
            raise TransientApiError(f"Server error: {status}", status_code=status, details=response.text)
        if status >= 400:
            raise AgentApiError(
                f"API request failed: {status} - {response.text}", status_code=status, details=response.text
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Invalid JSON response: {e}", status_code=status, details=response.text
            ) from e

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        use_cache: bool = False,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> Any:
        """Perform one logical call against the remote API.

        Args:
            method: HTTP method.
            endpoint: Path relative to the organization (e.g. ``/agent/run/1``).
            use_cache: Serve/store the response from the cache (GET only).
            body: JSON body for POST requests.
            params: Query parameters.
            cancel: Optional cancellation token.

        Returns:
            The parsed JSON response body (``None`` for an empty body).

        Raises:
            AuthenticationError, RunNotFoundError, MalformedResponseError,
            AgentApiError: Non-retryable failures.
            RetriesExhaustedError: Transient failures persisted past ``max_retries``.
            RunCancelledError: ``cancel`` fired at a suspension point.
        """
        method = method.upper()
        request_id = str(uuid4())
        query = {k: v for k, v in (params or {}).items() if v is not None}
        endpoint_key = f"{endpoint}?{httpx.QueryParams(query)}" if query else endpoint

        cache_key = None
        if use_cache and method == "GET" and self._cache is not None:
            cache_key = make_cache_key(method, endpoint_key, body)
            cached = self._cache.get(cache_key)
            if cached is not None:
                self._logger.debug("Cache hit for %s (request_id: %s)", endpoint_key, request_id)
                self._record(method, endpoint, 200, 0.0, request_id, cached=True)
                return cached

        url = self._url(endpoint)
        timeout = self.config.timeout_ms / 1000
        retries = 0
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()
            await self._rate_limiter.wait_if_needed(cancel)

            self._logger.info(
                "Making %s request to %s (request_id: %s, attempt: %d)", method, endpoint_key, request_id, retries + 1
            )
            started = self._clock()
            try:
                response = await guarded(
                    self._http.request(
                        method,
                        url,
                        headers=self._headers(),
                        json=body,
                        params=query or None,
                        timeout=timeout,
                    ),
                    cancel,
                )
            except httpx.TransportError as e:
                error = TransientApiError(f"Network error: {type(e).__name__}: {e}")
            else:
                latency_ms = (self._clock() - started) * 1000
                self._record(method, endpoint, response.status_code, latency_ms, request_id)
                self._logger.debug(
                    "Request completed in %.0fms - Status: %s (request_id: %s)",
                    latency_ms,
                    response.status_code,
                    request_id,
                )

                if response.status_code == 429:
                    retry_after = self._retry_after_seconds(response)
                    self._logger.warning("Rate limited by server, waiting %.0fms", retry_after * 1000)
                    await guarded(self._sleep(retry_after), cancel)
                    continue

                try:
                    result = self._interpret(response, endpoint)
                except TransientApiError as e:
                    error = e
                else:
                    if cache_key is not None and result is not None:
                        self._cache.set(cache_key, result)  # type: ignore[union-attr]
                    return result

            if retries >= self.config.max_retries:
                self._logger.error(
                    "Request %s %s failed after %d attempts: %s", method, endpoint_key, retries + 1, error.message
                )
                raise RetriesExhaustedError(error, attempts=retries + 1) from error

            delay_s = self.config.retry_delay_ms * (self.config.retry_backoff_factor**retries) / 1000
            self._logger.warning(
                "Request failed (attempt %d), retrying in %.0fms: %s", retries + 1, delay_s * 1000, error.message
            )
            await guarded(self._sleep(delay_s), cancel)
            retries += 1

    @staticmethod
    def _parse(model: Type[M], data: Any, endpoint: str) -> M:
        try:
            return model.model_validate(data if data is not None else {})
        except ValidationError as e:
            raise MalformedResponseError(
                f"Unexpected response shape from {endpoint}: {_validation_message(e)}", details=data
            ) from e

    # ------------------------------------------------------------------
    # Agent run endpoints
    # ------------------------------------------------------------------

    async def create_agent_run(
        self,
        prompt: str,
        images: Optional[list[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> RemoteRunRecord:
        try:
            payload = CreateAgentRunRequest(prompt=prompt, images=images, metadata=metadata)
        except ValidationError as e:
            raise InvalidRequestError(_validation_message(e)) from e
        data = await self.request(
            "POST", "/agent/run", body=payload.model_dump(mode="json", exclude_none=True), cancel=cancel
        )
        return self._parse(RemoteRunRecord, data, "/agent/run")

    async def get_agent_run(
        self, run_id: int, *, use_cache: bool = True, cancel: Optional[CancelToken] = None
    ) -> RemoteRunRecord:
        endpoint = f"/agent/run/{run_id}"
        data = await self.request("GET", endpoint, use_cache=use_cache, cancel=cancel)
        return self._parse(RemoteRunRecord, data, endpoint)

    async def resume_agent_run(
        self,
        run_id: int,
        prompt: str,
        images: Optional[list[str]] = None,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> RemoteRunRecord:
        try:
            payload = ResumeAgentRunRequest(agent_run_id=run_id, prompt=prompt, images=images)
        except ValidationError as e:
            raise InvalidRequestError(_validation_message(e)) from e
        data = await self.request(
            "POST", "/agent/run/resume", body=payload.model_dump(mode="json", exclude_none=True), cancel=cancel
        )
        return self._parse(RemoteRunRecord, data, "/agent/run/resume")

    async def get_agent_run_logs(
        self,
        run_id: int,
        skip: int = 0,
        limit: int = PAGE_SIZE,
        *,
        use_cache: bool = True,
        cancel: Optional[CancelToken] = None,
    ) -> AgentRunLogsPage:
        _check_pagination(skip, limit)
        endpoint = f"/agent/run/{run_id}/logs"
        data = await self.request(
            "GET", endpoint, use_cache=use_cache, params={"skip": skip, "limit": limit}, cancel=cancel
        )
        return self._parse(AgentRunLogsPage, data, endpoint)

    async def iter_agent_run_logs(self, run_id: int) -> AsyncIterator[AgentRunLog]:
        """Yield every log line of a run, paging through the logs endpoint."""
        skip = 0
        while True:
            page = await self.get_agent_run_logs(run_id, skip, PAGE_SIZE)
            for log in page.logs:
                yield log
            if len(page.logs) < PAGE_SIZE:
                return
            skip += PAGE_SIZE

    async def list_agent_runs(
        self,
        *,
        user_id: Optional[int] = None,
        source_type: Optional[str] = None,
        skip: int = 0,
        limit: int = PAGE_SIZE,
    ) -> AgentRunsPage:
        _check_pagination(skip, limit)
        data = await self.request(
            "GET",
            "/agent/runs",
            use_cache=True,
            params={"skip": skip, "limit": limit, "user_id": user_id, "source_type": source_type},
        )
        return self._parse(AgentRunsPage, data, "/agent/runs")

    # ------------------------------------------------------------------
    # Utility methods
    # ------------------------------------------------------------------

    async def health_check(self) -> Dict[str, Any]:
        started = self._clock()
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            await self.request("GET", "/users/me", use_cache=True)
        except AgentApiError as e:
            self._logger.warning("Health check failed: %s", e.message)
            return {"status": "unhealthy", "response_time_ms": 0.0, "timestamp": timestamp}
        return {
            "status": "healthy",
            "response_time_ms": (self._clock() - started) * 1000,
            "timestamp": timestamp,
        }

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "config": {
                "base_url": self.config.base_url,
                "timeout_ms": self.config.timeout_ms,
                "max_retries": self.config.max_retries,
                "rate_limit_requests_per_period": self.config.rate_limit_requests_per_period,
                "caching_enabled": self.config.enable_caching,
                "metrics_enabled": self.config.enable_metrics,
            },
            "rate_limiter": self._rate_limiter.current_usage().model_dump(),
        }
        if self._metrics is not None:
            stats["metrics"] = self._metrics.stats().model_dump(exclude={"recent_requests"})
        if self._cache is not None:
            stats["cache"] = self._cache.stats().model_dump()
        return stats

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()
            self._logger.info("Cache cleared")

    def reset_metrics(self) -> None:
        if self._metrics is not None:
            self._metrics.reset()
            self._logger.info("Metrics reset")
