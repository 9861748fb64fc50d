"""Cooperative cancellation for long-running agent-run operations.

A `CancelToken` is handed to the client, the poller and the run service; every
suspension point (rate-limiter wait, retry backoff, poll sleep, the HTTP call
itself) is awaited through `CancelToken.guard`, so a user-initiated abort
unwinds promptly with `RunCancelledError` instead of waiting for the next
poll tick.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from .errors import RunCancelledError

T = TypeVar("T")


class CancelToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def request_cancel(self, reason: Optional[str] = None) -> None:
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RunCancelledError(self._reason or "Agent run operation was cancelled.")

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless cancellation is requested first.

        Raises:
            RunCancelledError: When the token fires before ``awaitable`` finishes.
                The pending work is cancelled.
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            self.raise_if_cancelled()
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
        if task in done:
            return task.result()
        self.raise_if_cancelled()
        raise RunCancelledError()


async def guarded(awaitable: Awaitable[T], cancel: Optional[CancelToken]) -> T:
    """Await ``awaitable`` through ``cancel`` when one is given."""
    if cancel is None:
        return await awaitable
    return await cancel.guard(awaitable)
