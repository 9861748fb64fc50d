"""Error types raised by the remote agent API client.

Purpose:
- Provide typed exceptions thrown by `AsyncAgentApiClient` and the run
  orchestration built on top of it.
- Expose HTTP-oriented context (e.g., status code, error body) for diagnosis.
- Tell retryable failures apart from non-retryable ones via `retryable`.

Usage:
- Catch `AgentApiError` for every failure of the client.
- `AuthenticationError`/`RunNotFoundError`/`MalformedResponseError` are never
  retried; `TransientApiError` is retried until the budget is exhausted, then
  surfaced wrapped in `RetriesExhaustedError`.
- HTTP 429 never escapes the client: it is absorbed by sleeping for the
  server supplied ``Retry-After``.
"""

from __future__ import annotations

from typing import Any, Optional


class AgentApiError(Exception):
    """Base error for remote agent API failures.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code associated with the failure.
        details: Optional structured payload from the server (e.g., JSON body).
    """

    retryable: bool = False

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class InvalidRequestError(AgentApiError):
    """Raised locally, before any network call, when a request is invalid."""


class MissingRunIdError(InvalidRequestError):
    """Raised when a run is continued without a remote run id."""

    def __init__(self) -> None:
        super().__init__("Cannot continue a run without a runId.")


class AuthenticationError(AgentApiError):
    """Raised on HTTP 401: the token is invalid or lacks permissions."""

    def __init__(self, details: Optional[Any] = None) -> None:
        super().__init__("Invalid API token or insufficient permissions", status_code=401, details=details)


class RunNotFoundError(AgentApiError):
    """Raised on HTTP 404."""

    def __init__(self, endpoint: str, details: Optional[Any] = None) -> None:
        super().__init__(f"Requested resource not found: {endpoint}", status_code=404, details=details)
        self.endpoint = endpoint


class MalformedResponseError(AgentApiError):
    """Raised when a successful response does not carry a JSON body."""


class TransientApiError(AgentApiError):
    """Network failure or HTTP 5xx; safe to retry."""

    retryable = True


class RetriesExhaustedError(AgentApiError):
    """Raised once every retry of a transient failure has failed.

    Args:
        last_error: The error observed on the final attempt.
        attempts: Total number of attempts performed.
    """

    def __init__(self, last_error: AgentApiError, attempts: int) -> None:
        super().__init__(
            f"Request failed after {attempts} attempts: {last_error.message}",
            status_code=last_error.status_code,
            details=last_error.details,
        )
        self.last_error = last_error
        self.attempts = attempts


class PollingTimeoutError(AgentApiError):
    """Raised when a run does not reach a terminal status in time."""

    def __init__(self, run_id: int, timeout_ms: int) -> None:
        super().__init__(f"Agent run {run_id} did not complete within {timeout_ms}ms")
        self.run_id = run_id
        self.timeout_ms = timeout_ms


class RunCancelledError(AgentApiError):
    """Raised at a suspension point after cancellation was requested."""

    def __init__(self, reason: str = "Agent run operation was cancelled.") -> None:
        super().__init__(reason)
