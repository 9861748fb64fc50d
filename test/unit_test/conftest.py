from __future__ import annotations

from typing import Any, Callable, List

import httpx
import pytest

from runboard_ai.agent_client.client import AsyncAgentApiClient
from runboard_ai.agent_client.config import ClientConfig


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_client(test_config, clock: FakeClock) -> Callable[..., AsyncAgentApiClient]:
    """Build an `AsyncAgentApiClient` whose HTTP calls go to ``handler``."""

    def _make(handler: Callable[[httpx.Request], Any], **overrides: Any) -> AsyncAgentApiClient:
        config = ClientConfig(
            api_token=test_config.agent_api.api_token,
            org_id=test_config.agent_api.org_id,
            base_url=test_config.agent_api.base_url,
            **overrides,
        )
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return AsyncAgentApiClient(config, client=http, clock=clock, sleep=clock.sleep)

    return _make
