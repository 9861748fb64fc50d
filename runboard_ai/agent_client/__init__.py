"""Resilient client for the remote agent API.

- `AsyncAgentApiClient`: rate-limited, retrying, caching HTTP client.
- `AgentClientRegistry`: one client per ``(org_id, api_token)`` pair.
- `CancelToken`: cooperative cancellation threaded through every wait.
- `errors`: typed failures (auth, not found, transient, timeout, ...).
"""

from .cancel import CancelToken
from .client import AsyncAgentApiClient
from .config import ClientConfig
from .errors import (
    AgentApiError,
    AuthenticationError,
    InvalidRequestError,
    MalformedResponseError,
    MissingRunIdError,
    PollingTimeoutError,
    RetriesExhaustedError,
    RunCancelledError,
    RunNotFoundError,
    TransientApiError,
)
from .registry import AgentClientRegistry

__all__ = [
    "AgentApiError",
    "AgentClientRegistry",
    "AsyncAgentApiClient",
    "AuthenticationError",
    "CancelToken",
    "ClientConfig",
    "InvalidRequestError",
    "MalformedResponseError",
    "MissingRunIdError",
    "PollingTimeoutError",
    "RetriesExhaustedError",
    "RunCancelledError",
    "RunNotFoundError",
    "TransientApiError",
]
