from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest

from runboard_ai.agent_client.cancel import CancelToken
from runboard_ai.agent_client.errors import PollingTimeoutError, RunCancelledError, RunNotFoundError
from runboard_ai.agent_client.schemas.dto import RemoteRunRecord
from runboard_ai.agent_core.polling import RunPoller


class _ScriptedClient:
    """Returns the scripted statuses in order; the last one repeats."""

    def __init__(self, statuses: List[str], clock=None, fetch_cost_s: float = 0.0) -> None:
        self.statuses = statuses
        self.calls: List[dict] = []
        self._clock = clock
        self._fetch_cost_s = fetch_cost_s

    async def get_agent_run(
        self, run_id: int, *, use_cache: bool = True, cancel: Optional[CancelToken] = None
    ) -> RemoteRunRecord:
        self.calls.append({"run_id": run_id, "use_cache": use_cache})
        if self._clock is not None:
            self._clock.advance(self._fetch_cost_s)
        status = self.statuses[min(len(self.calls) - 1, len(self.statuses) - 1)]
        return RemoteRunRecord(id=run_id, status=status)


@pytest.mark.asyncio
async def test_sleeps_before_each_fetch_and_returns_settled_record(clock) -> None:
    client = _ScriptedClient(["running", "running", "completed"])
    poller = RunPoller(client, clock=clock, sleep=clock.sleep)

    record = await poller.wait_for_completion(4242, 3000)

    assert record.status == "completed"
    assert clock.sleeps == [3.0, 3.0, 3.0]
    assert len(client.calls) == 3


@pytest.mark.asyncio
async def test_polling_bypasses_cache(clock) -> None:
    client = _ScriptedClient(["completed"])
    poller = RunPoller(client, clock=clock, sleep=clock.sleep)

    await poller.wait_for_completion(4242, 10)

    assert client.calls == [{"run_id": 4242, "use_cache": False}]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["completed", "failed", "cancelled", "paused", "PAUSED", "Failed"])
async def test_settled_statuses(clock, status) -> None:
    client = _ScriptedClient([status])
    poller = RunPoller(client, clock=clock, sleep=clock.sleep)

    record = await poller.wait_for_completion(4242, 10)

    assert record.status == status
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_timeout_is_not_raised_before_bound(clock) -> None:
    client = _ScriptedClient(["running"])
    poller = RunPoller(client, clock=clock, sleep=clock.sleep)
    started = clock()

    with pytest.raises(PollingTimeoutError, match="Agent run 4242 did not complete within 2500ms"):
        await poller.wait_for_completion(4242, 1000, 2500)

    assert clock() - started >= 2.5
    assert clock.sleeps == [pytest.approx(1.0), pytest.approx(1.0), pytest.approx(0.5)]


@pytest.mark.asyncio
async def test_timeout_accounts_for_fetch_time(clock) -> None:
    client = _ScriptedClient(["running"], clock=clock, fetch_cost_s=0.4)
    poller = RunPoller(client, clock=clock, sleep=clock.sleep)
    started = clock()

    with pytest.raises(PollingTimeoutError):
        await poller.wait_for_completion(4242, 1000, 2000)

    assert clock() - started >= 2.0


@pytest.mark.asyncio
async def test_settled_on_last_poll_before_timeout_is_returned(clock) -> None:
    client = _ScriptedClient(["running", "running", "completed"])
    poller = RunPoller(client, clock=clock, sleep=clock.sleep)

    record = await poller.wait_for_completion(4242, 1000, 3000)

    assert record.status == "completed"


@pytest.mark.asyncio
async def test_fetch_errors_propagate(clock) -> None:
    class _Missing:
        async def get_agent_run(self, run_id, *, use_cache=True, cancel=None):
            raise RunNotFoundError(f"/agent/run/{run_id}")

    poller = RunPoller(_Missing(), clock=clock, sleep=clock.sleep)

    with pytest.raises(RunNotFoundError):
        await poller.wait_for_completion(4242, 10)


@pytest.mark.asyncio
async def test_cancel_interrupts_poll_sleep() -> None:
    client = _ScriptedClient(["running"])
    poller = RunPoller(client)
    token = CancelToken()
    asyncio.get_running_loop().call_later(0.01, token.request_cancel)

    with pytest.raises(RunCancelledError):
        await poller.wait_for_completion(4242, 60000, cancel=token)

    assert client.calls == []
