from __future__ import annotations

from typing import List, Optional

import pytest

from runboard_ai.agent_core.schemas.domain import AgentRun, AgentRunStatus, HistoryEntryType
from runboard_ai.agent_core.validation import (
    PIPELINE_COMPLETE,
    AnalysisResult,
    DeploymentResult,
    StageResult,
    ValidationPipeline,
    ValidationReport,
    begin_validation,
    finish_validation,
)


class _Backend:
    def __init__(self, *, fail: Optional[str] = None, tests_pass: bool = True) -> None:
        self.fail = fail
        self.tests_pass = tests_pass
        self.stages: List[str] = []

    def _result(self, stage: str) -> StageResult:
        self.stages.append(stage)
        return StageResult(success=self.fail != stage, detail=f"{stage} broke" if self.fail == stage else "")

    async def snapshot(self, repo_full_name, pr_number):
        return self._result("snapshot")

    async def clone(self, repo_full_name, pr_number):
        return self._result("clone")

    async def setup(self, repo_full_name, pr_number):
        return self._result("setup")

    async def deploy(self, repo_full_name, pr_number):
        self.stages.append("deploy")
        if self.fail == "deploy":
            return DeploymentResult(success=False, detail="port in use")
        return DeploymentResult(url="http://localhost:3000")

    async def static_analysis(self, repo_full_name, pr_number):
        self.stages.append("static_analysis")
        return AnalysisResult(score=92, issues=["unused import"])

    async def e2e_test(self, deployment_url):
        self.stages.append("e2e_test")
        return StageResult(success=self.tests_pass)

    async def teardown(self, repo_full_name, pr_number):
        self.stages.append("teardown")


@pytest.mark.asyncio
async def test_successful_pipeline_runs_every_stage_in_order() -> None:
    backend = _Backend()
    log: List[str] = []

    report = await ValidationPipeline(backend).run("acme/api", 3, log.append)

    assert report.success is True
    assert backend.stages == ["snapshot", "clone", "setup", "deploy", "static_analysis", "e2e_test", "teardown"]
    assert "Static Analysis Score: 92" in report.final_report
    assert "E2E Tests: Passed" in report.final_report
    assert log[0] == "Starting validation for PR #3 in acme/api..."
    assert log[-1] == PIPELINE_COMPLETE


@pytest.mark.asyncio
async def test_deploy_failure_stops_pipeline_and_tears_down() -> None:
    backend = _Backend(fail="deploy")

    report = await ValidationPipeline(backend).run("acme/api", 3, lambda _: None)

    assert report.success is False
    assert report.final_report == "Deployment failed: port in use"
    assert backend.stages == ["snapshot", "clone", "setup", "deploy", "teardown"]


@pytest.mark.asyncio
async def test_setup_failure_reports_deployment_failure() -> None:
    backend = _Backend(fail="setup")

    report = await ValidationPipeline(backend).run("acme/api", 3, lambda _: None)

    assert report.final_report == "Deployment failed: setup broke"
    assert backend.stages[-1] == "teardown"


@pytest.mark.asyncio
async def test_snapshot_failure_skips_teardown() -> None:
    backend = _Backend(fail="snapshot")

    report = await ValidationPipeline(backend).run("acme/api", 3, lambda _: None)

    assert report.success is False
    assert backend.stages == ["snapshot"]


@pytest.mark.asyncio
async def test_failing_e2e_tests_fail_the_report() -> None:
    report = await ValidationPipeline(_Backend(tests_pass=False)).run("acme/api", 3, lambda _: None)

    assert report.success is False
    assert "E2E Tests: Failed" in report.final_report


def test_begin_and_finish_validation_transitions() -> None:
    run = AgentRun(run_id=4242, status=AgentRunStatus.PR_CREATED)

    validating = begin_validation(run, 2)
    assert validating.status is AgentRunStatus.VALIDATING_PR
    assert validating.last_entry.content == "Auto-validation started for 2 PR(s)."

    passed = finish_validation(validating, ValidationReport(success=True, final_report="all good"))
    assert passed.status is AgentRunStatus.IDLE
    assert passed.last_entry.type is HistoryEntryType.status

    failed = finish_validation(validating, ValidationReport(success=False, final_report="broken"))
    assert failed.status is AgentRunStatus.IDLE
    assert failed.last_entry.type is HistoryEntryType.error
    assert len(failed.history) == 2
