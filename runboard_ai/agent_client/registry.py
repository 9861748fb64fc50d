"""Application-owned registry of remote agent clients.

One `AsyncAgentApiClient` exists per ``(org_id, api_token)`` pair. A pair seen
for the first time gets a brand-new client, hence fresh rate-limiter, cache
and metrics state; rotating a token or switching organization never reuses
the previous client's state. `acquire` also closes the clients an org held
under earlier tokens, so a rotated token does not leave its connections open.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Tuple

from runboard_ai.core.config import Settings

from .client import AsyncAgentApiClient
from .config import ClientConfig

ClientFactory = Callable[[ClientConfig], AsyncAgentApiClient]


class AgentClientRegistry:
    def __init__(self, settings: Settings, *, factory: Optional[ClientFactory] = None) -> None:
        self._settings = settings
        self._factory: ClientFactory = factory or AsyncAgentApiClient
        self._clients: Dict[Tuple[str, str], AsyncAgentApiClient] = {}
        self._logger = logging.getLogger(__name__)

    def __len__(self) -> int:
        return len(self._clients)

    def get(self, org_id: str, api_token: str) -> AsyncAgentApiClient:
        key = (org_id, api_token)
        client = self._clients.get(key)
        if client is None:
            self._logger.info("Creating new agent API client for org_id=%s", org_id)
            client = self._factory(ClientConfig.from_settings(org_id, api_token, self._settings))
            self._clients[key] = client
        return client

    async def acquire(self, org_id: str, api_token: str) -> AsyncAgentApiClient:
        """Return the client for the pair, closing clients held for the same org under other tokens."""
        stale = [key for key in self._clients if key[0] == org_id and key[1] != api_token]
        for key in stale:
            self._logger.info("Closing agent API client of a rotated token for org_id=%s", org_id)
            await self.evict(*key)
        return self.get(org_id, api_token)

    async def evict(self, org_id: str, api_token: str) -> None:
        client = self._clients.pop((org_id, api_token), None)
        if client is not None:
            await client.aclose()

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()
