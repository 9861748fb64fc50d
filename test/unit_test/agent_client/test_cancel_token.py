from __future__ import annotations

import asyncio

import pytest

from runboard_ai.agent_client.cancel import CancelToken, guarded
from runboard_ai.agent_client.errors import RunCancelledError


async def _value(v):
    return v


@pytest.mark.asyncio
async def test_guard_returns_result_when_not_cancelled() -> None:
    token = CancelToken()

    assert await token.guard(_value(42)) == 42
    assert await guarded(_value("x"), None) == "x"


@pytest.mark.asyncio
async def test_guard_raises_when_already_cancelled() -> None:
    token = CancelToken()
    token.request_cancel()
    ran = []

    async def work():
        ran.append(True)

    with pytest.raises(RunCancelledError, match="Agent run operation was cancelled."):
        await token.guard(work())
    await asyncio.sleep(0)
    assert ran == []


@pytest.mark.asyncio
async def test_cancel_while_waiting_aborts_pending_work() -> None:
    token = CancelToken()
    finished = []

    async def slow():
        await asyncio.sleep(10)
        finished.append(True)

    asyncio.get_running_loop().call_later(0.01, token.request_cancel, "stop")

    with pytest.raises(RunCancelledError, match="stop"):
        await token.guard(slow())
    assert finished == []
    assert token.cancelled is True
    assert token.reason == "stop"


@pytest.mark.asyncio
async def test_guard_propagates_work_errors() -> None:
    token = CancelToken()

    async def failing():
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        await token.guard(failing())
