"""Pull-request validation pipeline shape.

The pipeline runs a fixed sequence of stages against a pull request:

    snapshot -> clone -> setup -> deploy -> static analysis -> e2e tests -> teardown

Stages are executed by a pluggable ``ValidationBackend``; no backend ships
with this package. Teardown always runs once a snapshot exists, even when an
earlier stage failed.

While a validation is in flight the project's run sits in ``VALIDATING_PR``;
``begin_validation``/``finish_validation`` perform those transitions.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol

from pydantic import BaseModel, Field

from runboard_ai.core.logging_config import get_logger

from .schemas.domain import AgentRun, AgentRunStatus, HistoryEntry, HistoryEntryType

logger = get_logger(__name__)

LogCallback = Callable[[str], None]

PIPELINE_COMPLETE = "Validation pipeline complete."


class StageResult(BaseModel):
    success: bool = True
    detail: str = ""


class DeploymentResult(StageResult):
    url: Optional[str] = None


class AnalysisResult(StageResult):
    score: Optional[int] = None
    issues: List[str] = Field(default_factory=list)


class ValidationReport(BaseModel):
    success: bool
    final_report: str


class ValidationBackend(Protocol):
    async def snapshot(self, repo_full_name: str, pr_number: int) -> StageResult: ...

    async def clone(self, repo_full_name: str, pr_number: int) -> StageResult: ...

    async def setup(self, repo_full_name: str, pr_number: int) -> StageResult: ...

    async def deploy(self, repo_full_name: str, pr_number: int) -> DeploymentResult: ...

    async def static_analysis(self, repo_full_name: str, pr_number: int) -> AnalysisResult: ...

    async def e2e_test(self, deployment_url: Optional[str]) -> StageResult: ...

    async def teardown(self, repo_full_name: str, pr_number: int) -> None: ...


class ValidationPipeline:
    def __init__(self, backend: ValidationBackend) -> None:
        self._backend = backend

    async def run(self, repo_full_name: str, pr_number: int, log: LogCallback) -> ValidationReport:
        log(f"Starting validation for PR #{pr_number} in {repo_full_name}...")
        snapshot = await self._backend.snapshot(repo_full_name, pr_number)
        if not snapshot.success:
            return self._fail(log, f"Snapshot failed: {snapshot.detail}")
        log("Snapshot created.")
        try:
            return await self._validate(repo_full_name, pr_number, log)
        finally:
            log("Tearing down sandbox environment...")
            await self._backend.teardown(repo_full_name, pr_number)
            log(PIPELINE_COMPLETE)

    async def _validate(self, repo_full_name: str, pr_number: int, log: LogCallback) -> ValidationReport:
        cloned = await self._backend.clone(repo_full_name, pr_number)
        if not cloned.success:
            return self._fail(log, f"Clone failed: {cloned.detail}")
        log(f"PR #{pr_number} codebase cloned.")

        setup = await self._backend.setup(repo_full_name, pr_number)
        if not setup.success:
            return self._fail(log, f"Deployment failed: {setup.detail}")
        log("Setup commands completed successfully.")

        deployment = await self._backend.deploy(repo_full_name, pr_number)
        if not deployment.success:
            return self._fail(log, f"Deployment failed: {deployment.detail}")
        log(f"Deployment successful. Available at: {deployment.url}")

        analysis = await self._backend.static_analysis(repo_full_name, pr_number)
        log(f"Static analysis complete. Score: {analysis.score}. Issues found: {len(analysis.issues)}")

        tests = await self._backend.e2e_test(deployment.url)
        log("E2E tests passed." if tests.success else "E2E tests failed.")

        report = (
            f"Validation Summary for PR #{pr_number}:\n"
            f"- Deployment: Success\n"
            f"- Static Analysis Score: {analysis.score}\n"
            f"- E2E Tests: {'Passed' if tests.success else 'Failed'}"
        )
        if tests.detail:
            report += f"\n\n{tests.detail}"
        return ValidationReport(success=analysis.success and tests.success, final_report=report)

    @staticmethod
    def _fail(log: LogCallback, report: str) -> ValidationReport:
        logger.warning("Validation failed: %s", report)
        log(report)
        return ValidationReport(success=False, final_report=report)


def begin_validation(agent_run: AgentRun, pr_count: int) -> AgentRun:
    entry = HistoryEntry(type=HistoryEntryType.status, content=f"Auto-validation started for {pr_count} PR(s).")
    return agent_run.with_entries(entry, status=AgentRunStatus.VALIDATING_PR)


def log_validation_step(agent_run: AgentRun, message: str) -> AgentRun:
    return agent_run.with_entries(HistoryEntry(type=HistoryEntryType.status, content=message))


def finish_validation(agent_run: AgentRun, report: ValidationReport) -> AgentRun:
    entry_type = HistoryEntryType.status if report.success else HistoryEntryType.error
    entry = HistoryEntry(type=entry_type, content=report.final_report)
    return agent_run.with_entries(entry, status=AgentRunStatus.IDLE)
