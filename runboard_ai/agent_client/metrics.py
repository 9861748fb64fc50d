"""Bounded request metrics for the remote agent client."""

from __future__ import annotations

import time
from collections import Counter, deque
from datetime import datetime, timezone
from typing import Deque, Dict, List

from pydantic import BaseModel, Field

from .rate_limiter import Clock

MAX_SAMPLES = 1000


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RequestMetric(BaseModel):
    method: str
    endpoint: str
    status_code: int
    latency_ms: float
    cached: bool = False
    request_id: str
    timestamp: datetime = Field(default_factory=_utc_now)


class ClientStats(BaseModel):
    uptime_ms: float = 0.0
    total_requests: int = 0
    total_errors: int = 0
    error_rate: float = 0.0
    requests_per_minute: float = 0.0
    average_response_time_ms: float = 0.0
    cache_hit_rate: float = 0.0
    status_code_distribution: Dict[int, int] = Field(default_factory=dict)
    recent_requests: List[RequestMetric] = Field(default_factory=list)


class MetricsCollector:
    """Ring buffer of the last ``max_samples`` request metrics."""

    def __init__(self, max_samples: int = MAX_SAMPLES, *, clock: Clock = time.monotonic) -> None:
        self._samples: Deque[RequestMetric] = deque(maxlen=max_samples)
        self._clock = clock
        self._started = clock()

    @property
    def samples(self) -> List[RequestMetric]:
        return list(self._samples)

    def record(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        latency_ms: float,
        request_id: str,
        *,
        cached: bool = False,
    ) -> RequestMetric:
        metric = RequestMetric(
            method=method,
            endpoint=endpoint,
            status_code=status_code,
            latency_ms=latency_ms,
            cached=cached,
            request_id=request_id,
        )
        self._samples.append(metric)
        return metric

    def stats(self) -> ClientStats:
        if not self._samples:
            return ClientStats()
        uptime_ms = (self._clock() - self._started) * 1000
        total = len(self._samples)
        errors = sum(1 for m in self._samples if m.status_code >= 400)
        cached = sum(1 for m in self._samples if m.cached)
        return ClientStats(
            uptime_ms=uptime_ms,
            total_requests=total,
            total_errors=errors,
            error_rate=errors / total,
            requests_per_minute=total / (uptime_ms / 60000) if uptime_ms > 0 else float(total),
            average_response_time_ms=sum(m.latency_ms for m in self._samples) / total,
            cache_hit_rate=cached / total,
            status_code_distribution=dict(Counter(m.status_code for m in self._samples)),
            recent_requests=list(self._samples)[-10:],
        )

    def reset(self) -> None:
        self._samples.clear()
        self._started = self._clock()
