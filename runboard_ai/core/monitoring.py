"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for monitoring and
tracing of agent-run orchestration, including:
- Agent run start/completion events
- Remote API request latency and status codes
- Error tracking with context
- Automatic HTTPX instrumentation of the remote agent client

Every helper is a no-op until ``initialize_logfire`` has configured Logfire,
so library users and tests never emit telemetry by accident.
"""

import logging
import os
from typing import Optional

import logfire

logger = logging.getLogger(__name__)

# Logfire configuration from environment
LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "runboard-ai")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.0.0")

# Feature flags
LOGFIRE_TRACE_HTTPX = os.getenv("LOGFIRE_TRACE_HTTPX", "true").lower() in ("true", "1", "yes")

_logfire_active = False


def initialize_logfire(enabled: Optional[bool] = None, token: Optional[str] = None) -> bool:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    Args:
        enabled: Override ``LOGFIRE_ENABLED``.
        token: Override ``LOGFIRE_TOKEN``.

    Returns:
        True when Logfire is configured and the ``log_*`` helpers will emit.
    """
    global _logfire_active

    enabled = LOGFIRE_ENABLED if enabled is None else enabled
    token = LOGFIRE_TOKEN if token is None else token

    if not enabled:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False

    if not token:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return False

    try:
        logfire.configure(
            token=token,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
        )
        if LOGFIRE_TRACE_HTTPX:
            try:
                logfire.instrument_httpx()
                logger.info("Logfire: HTTPX instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument HTTPX: {e}")
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return False

    _logfire_active = True
    logger.info(f"Logfire monitoring initialized: environment={LOGFIRE_ENVIRONMENT}, service={LOGFIRE_SERVICE_NAME}")
    return True


def is_logfire_active() -> bool:
    return _logfire_active


def log_agent_run(run_id: Optional[int], project: str, operation: str) -> None:
    """
    Log the start of an agent run operation with context.

    Args:
        run_id: The remote run identifier, when already known
        project: Full name of the project the run belongs to
        operation: One of start/continue/refresh
    """
    if not _logfire_active:
        return
    try:
        logfire.info("Agent run operation started", run_id=run_id, project=project, operation=operation)
    except Exception:
        logger.debug(f"Could not log agent run to Logfire: run_id={run_id}")


def log_agent_completion(run_id: Optional[int], status: str, duration_ms: float) -> None:
    """
    Log the completion of an agent run operation.

    Args:
        run_id: The remote run identifier
        status: The resulting local status
        duration_ms: The duration of the operation in milliseconds
    """
    if not _logfire_active:
        return
    try:
        logfire.info("Agent run operation completed", run_id=run_id, status=status, duration_ms=duration_ms)
    except Exception:
        logger.debug(f"Could not log agent completion to Logfire: run_id={run_id}")


def log_api_request(method: str, path: str, status_code: int, duration_ms: float, cached: bool = False) -> None:
    """
    Log a remote API request with performance metrics.

    Args:
        method: HTTP method
        path: Request path
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
        cached: Whether the response was served from the local cache
    """
    if not _logfire_active:
        return
    try:
        logfire.info(
            "API request completed",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
            cached=cached,
        )
    except Exception:
        logger.debug(f"Could not log API request to Logfire: {method} {path}")


def log_error(error_type: str, error_message: str, context: Optional[dict] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    if not _logfire_active:
        return
    try:
        logfire.error(f"{error_type}: {error_message}", **(context or {}))
    except Exception:
        logger.debug(f"Could not log error to Logfire: {error_type}")
