"""Poll a remote agent run until it stops making progress on its own.

The poller sleeps first, then fetches the run (bypassing the response cache so
every tick observes fresh state). A run is settled once its lower-cased
status is ``completed``, ``failed``, ``cancelled`` or ``paused``; a paused run
waits for ``continue_run`` rather than being polled further.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from runboard_ai.agent_client.cancel import CancelToken, guarded
from runboard_ai.agent_client.client import AsyncAgentApiClient
from runboard_ai.agent_client.errors import PollingTimeoutError
from runboard_ai.agent_client.rate_limiter import Clock, Sleep
from runboard_ai.agent_client.schemas.dto import TERMINAL_STATUSES, RemoteRunRecord
from runboard_ai.core.logging_config import get_logger

logger = get_logger(__name__)

SETTLED_STATUSES = TERMINAL_STATUSES | {"paused"}


class RunPoller:
    def __init__(
        self,
        client: AsyncAgentApiClient,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._clock = clock
        self._sleep = sleep

    async def wait_for_completion(
        self,
        run_id: int,
        poll_interval_ms: int,
        timeout_ms: Optional[int] = None,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> RemoteRunRecord:
        """Return the first settled record of ``run_id``.

        Raises:
            PollingTimeoutError: ``timeout_ms`` elapsed without a settled status.
                Never raised before the bound has elapsed.
            RunCancelledError: ``cancel`` fired while sleeping or fetching.
            AgentApiError: The underlying fetch failed.
        """
        started = self._clock()
        interval_s = poll_interval_ms / 1000
        polls = 0
        logger.info("Waiting for completion of agent run %s", run_id)

        while True:
            delay_s = interval_s
            if timeout_ms is not None:
                remaining_s = timeout_ms / 1000 - (self._clock() - started)
                delay_s = max(min(interval_s, remaining_s), 0.0)
            await guarded(self._sleep(delay_s), cancel)

            polls += 1
            run = await self._client.get_agent_run(run_id, use_cache=False, cancel=cancel)
            status = run.normalized_status
            logger.debug("Poll %d for agent run %s: status=%s", polls, run_id, status)
            if status in SETTLED_STATUSES:
                logger.info("Agent run %s settled with status %s after %d polls", run_id, status, polls)
                return run

            if timeout_ms is not None and (self._clock() - started) * 1000 >= timeout_ms:
                logger.error("Agent run %s timed out after %sms", run_id, timeout_ms)
                raise PollingTimeoutError(run_id, timeout_ms)
