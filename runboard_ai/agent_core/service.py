"""High-level lifecycle operations for agent runs.

``AgentRunService`` is the single boundary between the dashboard and the
remote agent service. Each public operation composes the resilient client,
the ``RunPoller`` and ``translate_run`` into a new ``AgentRun`` value:

- ``start_run``: create a remote run from the project's planning statement,
  rules and the user's target, wait for it to settle, translate.
- ``continue_run``: resume the project's remote run with a message.
- ``confirm_plan`` / ``modify_plan``: canned ``continue_run`` messages.
- ``refresh_run``: one status fetch without polling.

Failure policy
--------------

Every client error (authentication, not found, exhausted retries, polling
timeout, cancellation, invalid prompt) is converted into an ``AgentRun`` in
``ERROR`` state whose last history entry carries the message. The only error
that reaches the caller is ``MissingRunIdError``: continuing a project that
has no remote run is a programming error, raised before any network call.

The service performs no locking: callers apply the returned ``AgentRun`` to
the project and must keep a single writer per project.
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional

from runboard_ai.agent_client.cancel import CancelToken
from runboard_ai.agent_client.client import AsyncAgentApiClient
from runboard_ai.agent_client.errors import AgentApiError, MissingRunIdError
from runboard_ai.agent_client.registry import AgentClientRegistry
from runboard_ai.core.logging_config import get_logger
from runboard_ai.core.monitoring import log_agent_completion, log_agent_run, log_error

from .polling import RunPoller
from .schemas.domain import (
    AgentRun,
    AgentRunStatus,
    Credentials,
    HistoryEntry,
    HistoryEntryType,
    Plan,
    Project,
    ProjectSettings,
)
from .translator import history_from_logs, translate_run

logger = get_logger(__name__)

PROCEED_MESSAGE = "Proceed with the plan."
MODIFIED_PLAN_PREFIX = "User modified the plan. New instructions:\n"
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."

PollerFactory = Callable[[AsyncAgentApiClient], RunPoller]


def build_prompt(settings: ProjectSettings, target: str) -> str:
    return f"{settings.planning_statement}\n\n## Rules:\n{settings.rules}\n\n## Target:\n{target}"


def propose_plan(agent_run: AgentRun, plan: Plan) -> AgentRun:
    """Move a run into ``PLAN_PROPOSED`` once a plan was detected upstream."""
    steps = "\n".join(f"{i}. {step}" for i, step in enumerate(plan.steps, start=1))
    entry = HistoryEntry(type=HistoryEntryType.response, content=f"Proposed plan: {plan.title}\n{steps}".rstrip())
    return agent_run.with_entries(entry, status=AgentRunStatus.PLAN_PROPOSED, current_plan=plan)


def _status(content: str) -> HistoryEntry:
    return HistoryEntry(type=HistoryEntryType.status, content=content)


class AgentRunService:
    """Start, continue and interpret remote agent runs for dashboard projects."""

    def __init__(
        self,
        registry: AgentClientRegistry,
        *,
        poll_timeout_ms: Optional[int] = None,
        poller_factory: PollerFactory = RunPoller,
    ) -> None:
        self._registry = registry
        self._poll_timeout_ms = poll_timeout_ms
        self._poller_factory = poller_factory

    async def _client(self, credentials: Credentials) -> AsyncAgentApiClient:
        return await self._registry.acquire(credentials.org_id, credentials.api_token)

    @staticmethod
    def _poll_interval(credentials: Credentials, client: AsyncAgentApiClient) -> int:
        if credentials.poll_interval_ms is not None:
            return credentials.poll_interval_ms
        return client.config.poll_interval_ms

    async def _settle(
        self,
        client: AsyncAgentApiClient,
        run_id: int,
        credentials: Credentials,
        history: List[HistoryEntry],
        cancel: Optional[CancelToken],
    ) -> AgentRun:
        poller = self._poller_factory(client)
        final = await poller.wait_for_completion(
            run_id,
            self._poll_interval(credentials, client),
            self._poll_timeout_ms,
            cancel=cancel,
        )
        return translate_run(final, history)

    @staticmethod
    def _failed(run_id: Optional[int], history: List[HistoryEntry], error: Exception, operation: str) -> AgentRun:
        if isinstance(error, AgentApiError):
            message = error.message
            logger.error("Failed to %s agent run %s: %s", operation, run_id, message)
        else:
            message = UNKNOWN_ERROR_MESSAGE
            logger.exception("Unexpected failure while trying to %s agent run %s", operation, run_id)
        log_error(type(error).__name__, message, {"run_id": run_id, "operation": operation})
        return AgentRun(
            run_id=run_id,
            status=AgentRunStatus.ERROR,
            history=[*history, HistoryEntry(type=HistoryEntryType.error, content=message)],
        )

    async def start_run(
        self,
        project: Project,
        target: str,
        credentials: Credentials,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> AgentRun:
        """Create a remote run for ``target`` and wait for it to settle.

        Never raises: failures yield an ``ERROR`` run.
        """
        started = time.monotonic()
        logger.info("Starting agent run for project %s", project.full_name)
        log_agent_run(None, project.full_name, "start")

        history: List[HistoryEntry] = [
            *project.agent_run.history,
            HistoryEntry(type=HistoryEntryType.prompt, content=f"Project: {project.full_name}\nTarget: {target}"),
            _status("Agent run started..."),
        ]
        run_id: Optional[int] = None
        try:
            client = await self._client(credentials)
            created = await client.create_agent_run(
                build_prompt(project.settings, target),
                metadata={"project_name": project.full_name},
                cancel=cancel,
            )
            run_id = created.id
            history.append(_status(f"Agent run ID: {run_id}. Waiting for response..."))
            result = await self._settle(client, run_id, credentials, history, cancel)
        except Exception as e:
            result = self._failed(run_id, history, e, "start")

        log_agent_completion(result.run_id, result.status.value, (time.monotonic() - started) * 1000)
        return result

    async def continue_run(
        self,
        project: Project,
        message: str,
        credentials: Credentials,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> AgentRun:
        """Resume the project's remote run with ``message`` and wait for it to settle.

        Raises:
            MissingRunIdError: The project has no remote run yet.
        """
        run_id = project.agent_run.run_id
        if run_id is None:
            raise MissingRunIdError()

        started = time.monotonic()
        logger.info("Continuing agent run %s for project %s", run_id, project.full_name)
        log_agent_run(run_id, project.full_name, "continue")

        history: List[HistoryEntry] = [
            *project.agent_run.history,
            HistoryEntry(type=HistoryEntryType.prompt, content=message),
        ]
        try:
            client = await self._client(credentials)
            await client.resume_agent_run(run_id, message, cancel=cancel)
            history.append(_status("Resumed run. Waiting for response..."))
            result = await self._settle(client, run_id, credentials, history, cancel)
        except Exception as e:
            result = self._failed(run_id, history, e, "continue")

        log_agent_completion(run_id, result.status.value, (time.monotonic() - started) * 1000)
        return result

    async def confirm_plan(
        self, project: Project, credentials: Credentials, *, cancel: Optional[CancelToken] = None
    ) -> AgentRun:
        return await self.continue_run(project, PROCEED_MESSAGE, credentials, cancel=cancel)

    async def modify_plan(
        self,
        project: Project,
        new_plan_text: str,
        credentials: Credentials,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> AgentRun:
        return await self.continue_run(project, MODIFIED_PLAN_PREFIX + new_plan_text, credentials, cancel=cancel)

    async def refresh_run(self, project: Project, credentials: Credentials) -> AgentRun:
        """Fetch the current remote state once and translate it, without polling.

        Raises:
            MissingRunIdError: The project has no remote run yet.
        """
        run_id = project.agent_run.run_id
        if run_id is None:
            raise MissingRunIdError()
        log_agent_run(run_id, project.full_name, "refresh")
        history = list(project.agent_run.history)
        try:
            client = await self._client(credentials)
            record = await client.get_agent_run(run_id, use_cache=False)
        except Exception as e:
            return self._failed(run_id, history, e, "refresh")
        return translate_run(record, history, plan=project.agent_run.current_plan)

    async def fetch_run_log(self, project: Project, credentials: Credentials) -> List[HistoryEntry]:
        """Readable entries built from the remote run's logs, for display only.

        Raises:
            MissingRunIdError: The project has no remote run yet.
            AgentApiError: The logs could not be fetched.
        """
        run_id = project.agent_run.run_id
        if run_id is None:
            raise MissingRunIdError()
        client = await self._client(credentials)
        logs = [log async for log in client.iter_agent_run_logs(run_id)]
        return history_from_logs(run_id, logs)
