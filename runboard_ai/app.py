"""
Application root.

``RunboardApp`` wires settings, logging, monitoring, the client registry, the
project store and the run service together. It owns the long-lived
``AgentClientRegistry`` and closes every client on shutdown, so use it as an
async context manager (or call ``aclose``).

Every lifecycle method loads the project, calls the service and writes the
returned ``AgentRun`` back to the store before returning it.
"""

from __future__ import annotations

from typing import Any, List, Optional

from runboard_ai.agent_client.cancel import CancelToken
from runboard_ai.agent_client.registry import AgentClientRegistry
from runboard_ai.agent_core.polling import RunPoller
from runboard_ai.agent_core.projects import InMemoryKeyValueStore, KeyValueStore, ProjectStore
from runboard_ai.agent_core.schemas.domain import (
    AgentRun,
    AgentRunStatus,
    Credentials,
    HistoryEntry,
    Plan,
    Project,
    ProjectSettings,
    PullRequestRef,
)
from runboard_ai.agent_core.service import AgentRunService, PollerFactory, propose_plan
from runboard_ai.agent_core.validation import (
    ValidationBackend,
    ValidationPipeline,
    ValidationReport,
    begin_validation,
    finish_validation,
    log_validation_step,
)
from runboard_ai.core.config import Settings
from runboard_ai.core.logging_config import get_logger, setup_logging
from runboard_ai.core.monitoring import initialize_logfire, is_logfire_active, log_error

logger = get_logger(__name__)


class RunboardApp:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[KeyValueStore] = None,
        *,
        registry: Optional[AgentClientRegistry] = None,
        validation_backend: Optional[ValidationBackend] = None,
        poller_factory: PollerFactory = RunPoller,
        configure_logging: bool = True,
    ) -> None:
        self.settings = settings or Settings()
        if configure_logging:
            setup_logging(log_level=self.settings.log_level)
        initialize_logfire()

        self.registry = registry or AgentClientRegistry(self.settings)
        self.projects = ProjectStore(store if store is not None else InMemoryKeyValueStore())
        self.service = AgentRunService(
            self.registry, poll_timeout_ms=self.settings.polling.timeout_ms, poller_factory=poller_factory
        )
        self._validation = ValidationPipeline(validation_backend) if validation_backend is not None else None
        logger.info("Runboard-AI application initialized")

    @property
    def monitoring_active(self) -> bool:
        return is_logfire_active()

    async def __aenter__(self) -> "RunboardApp":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        logger.info("Shutting down Runboard-AI application...")
        await self.registry.aclose()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def add_project(self, project_id: int, full_name: str, settings: Optional[ProjectSettings] = None) -> Project:
        return self.projects.add_project(project_id, full_name, settings)

    def remove_project(self, project_id: int) -> None:
        self.projects.remove_project(project_id)

    def list_projects(self) -> List[Project]:
        return self.projects.list()

    def _apply(self, project_id: int, agent_run: AgentRun) -> AgentRun:
        self.projects.apply_agent_run(project_id, agent_run)
        return agent_run

    # ------------------------------------------------------------------
    # Agent run lifecycle
    # ------------------------------------------------------------------

    async def start_run(
        self, project_id: int, target: str, credentials: Credentials, *, cancel: Optional[CancelToken] = None
    ) -> AgentRun:
        project = self.projects.get(project_id)
        return self._apply(project_id, await self.service.start_run(project, target, credentials, cancel=cancel))

    async def continue_run(
        self, project_id: int, message: str, credentials: Credentials, *, cancel: Optional[CancelToken] = None
    ) -> AgentRun:
        project = self.projects.get(project_id)
        return self._apply(project_id, await self.service.continue_run(project, message, credentials, cancel=cancel))

    async def confirm_plan(
        self, project_id: int, credentials: Credentials, *, cancel: Optional[CancelToken] = None
    ) -> AgentRun:
        project = self.projects.get(project_id)
        return self._apply(project_id, await self.service.confirm_plan(project, credentials, cancel=cancel))

    async def modify_plan(
        self, project_id: int, new_plan_text: str, credentials: Credentials, *, cancel: Optional[CancelToken] = None
    ) -> AgentRun:
        project = self.projects.get(project_id)
        return self._apply(
            project_id, await self.service.modify_plan(project, new_plan_text, credentials, cancel=cancel)
        )

    async def propose_plan(
        self, project_id: int, plan: Plan, credentials: Credentials, *, cancel: Optional[CancelToken] = None
    ) -> AgentRun:
        """Record a proposed plan; confirm it straight away when the project auto-confirms."""
        project = self.projects.get(project_id)
        proposed = self._apply(project_id, propose_plan(project.agent_run, plan))
        if not project.settings.auto_confirm_plan:
            return proposed
        logger.info("Auto-confirming plan for project %s", project.full_name)
        return await self.confirm_plan(project_id, credentials, cancel=cancel)

    async def refresh_run(self, project_id: int, credentials: Credentials) -> AgentRun:
        project = self.projects.get(project_id)
        return self._apply(project_id, await self.service.refresh_run(project, credentials))

    async def fetch_run_log(self, project_id: int, credentials: Credentials) -> List[HistoryEntry]:
        return await self.service.fetch_run_log(self.projects.get(project_id), credentials)

    # ------------------------------------------------------------------
    # Pull request validation
    # ------------------------------------------------------------------

    async def validate_pull_requests(self, project_id: int) -> AgentRun:
        """Run the validation pipeline over every tracked pull request of a project.

        A backend error stops the pass: the pull request under validation is
        marked ``failed`` and the run returns to ``IDLE`` with an error entry.

        Raises:
            RuntimeError: No validation backend was configured.
        """
        if self._validation is None:
            raise RuntimeError("No validation backend configured")
        project = self.projects.get(project_id)
        pull_requests = project.pull_requests
        agent_run = self._apply(project_id, begin_validation(project.agent_run, len(pull_requests)))

        steps: List[str] = []
        overall: Optional[ValidationReport] = None
        for pr in pull_requests:
            try:
                report = await self._validation.run(project.full_name, pr.number, steps.append)
            except Exception as e:
                logger.exception("Validation of PR #%s in %s raised", pr.number, project.full_name)
                log_error(type(e).__name__, str(e), {"project": project.full_name, "pr_number": pr.number})
                overall = ValidationReport(success=False, final_report=f"Validation error for PR #{pr.number}: {e}")
                pull_requests = _with_validation_status(pull_requests, pr.id, "failed")
                break
            pull_requests = _with_validation_status(pull_requests, pr.id, "passed" if report.success else "failed")
            # A failing report wins over any earlier success
            if overall is None or not report.success:
                overall = report
        for step in steps:
            agent_run = log_validation_step(agent_run, step)
        self.projects.update_pull_requests(project_id, pull_requests)

        if overall is None:
            return self._apply(project_id, agent_run.model_copy(update={"status": AgentRunStatus.IDLE}))
        return self._apply(project_id, finish_validation(agent_run, overall))


def _with_validation_status(pull_requests: List[PullRequestRef], pr_id: int, status: str) -> List[PullRequestRef]:
    return [p.model_copy(update={"validation_status": status}) if p.id == pr_id else p for p in pull_requests]
