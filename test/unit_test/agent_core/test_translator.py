from __future__ import annotations

from typing import Any

import pytest

from runboard_ai.agent_client.schemas.dto import AgentRunLog, RemoteRunRecord
from runboard_ai.agent_core.schemas.domain import AgentRunStatus, HistoryEntry, HistoryEntryType, Plan
from runboard_ai.agent_core.translator import (
    COMPLETED_FALLBACK,
    FAILED_FALLBACK,
    PAUSED_FALLBACK,
    WORKING_MESSAGE,
    history_from_logs,
    translate_run,
)

PR = {"id": 17, "title": "Add login", "url": "http://pr/17"}


def _record(status: str, **extra: Any) -> RemoteRunRecord:
    return RemoteRunRecord.model_validate({"id": 4242, "status": status, **extra})


class TestTranslateRunStatuses:
    @pytest.mark.parametrize(
        "status,result,expected_status,expected_type,expected_content",
        [
            ("completed", "All done.", AgentRunStatus.IDLE, HistoryEntryType.response, "All done."),
            ("completed", None, AgentRunStatus.IDLE, HistoryEntryType.response, COMPLETED_FALLBACK),
            ("failed", "Boom", AgentRunStatus.ERROR, HistoryEntryType.error, "Boom"),
            ("failed", None, AgentRunStatus.ERROR, HistoryEntryType.error, FAILED_FALLBACK),
            ("cancelled", None, AgentRunStatus.ERROR, HistoryEntryType.error, FAILED_FALLBACK),
            ("paused", "Which DB?", AgentRunStatus.RESPONSE_DEFAULT, HistoryEntryType.response, "Which DB?"),
            ("paused", None, AgentRunStatus.RESPONSE_DEFAULT, HistoryEntryType.response, PAUSED_FALLBACK),
            ("running", "partial", AgentRunStatus.RUNNING, HistoryEntryType.status, WORKING_MESSAGE),
            ("pending", None, AgentRunStatus.RUNNING, HistoryEntryType.status, WORKING_MESSAGE),
            ("ACTIVE", None, AgentRunStatus.RUNNING, HistoryEntryType.status, WORKING_MESSAGE),
            ("COMPLETED", "Done", AgentRunStatus.IDLE, HistoryEntryType.response, "Done"),
            ("Failed", "Nope", AgentRunStatus.ERROR, HistoryEntryType.error, "Nope"),
        ],
    )
    def test_status_mapping(self, status, result, expected_status, expected_type, expected_content) -> None:
        run = translate_run(_record(status, result=result), [])

        assert run.run_id == 4242
        assert run.status is expected_status
        assert len(run.history) == 1
        assert run.history[0].type is expected_type
        assert run.history[0].content == expected_content


class TestTranslateRunPrecedence:
    def test_pull_request_wins_over_completed(self) -> None:
        run = translate_run(_record("completed", result="Done", github_pull_requests=[PR]), [])

        assert run.status is AgentRunStatus.PR_CREATED
        assert run.last_entry.type is HistoryEntryType.response
        assert run.last_entry.content == 'Pull Request #17 has been created: "Add login".'

    def test_pull_request_wins_over_paused(self) -> None:
        run = translate_run(_record("paused", result="Need input", github_pull_requests=[PR]), [])

        assert run.status is AgentRunStatus.PR_CREATED

    def test_pull_request_wins_over_running(self) -> None:
        run = translate_run(_record("running", github_pull_requests=[PR]), [])

        assert run.status is AgentRunStatus.PR_CREATED

    def test_failure_wins_over_pull_request(self) -> None:
        run = translate_run(_record("failed", result="CI broke", github_pull_requests=[PR]), [])

        assert run.status is AgentRunStatus.ERROR
        assert run.last_entry.content == "CI broke"

    def test_first_pull_request_is_reported(self) -> None:
        second = {"id": 18, "title": "Follow-up"}
        run = translate_run(_record("completed", github_pull_requests=[PR, second]), [])

        assert "#17" in run.last_entry.content


class TestTranslateRunHistory:
    def test_prior_history_is_kept_and_not_mutated(self) -> None:
        prior = [
            HistoryEntry(type=HistoryEntryType.prompt, content="Project: acme/api\nTarget: fix"),
            HistoryEntry(type=HistoryEntryType.status, content="Agent run started..."),
        ]
        snapshot = list(prior)

        run = translate_run(_record("completed", result="ok"), prior)

        assert prior == snapshot
        assert run.history[:2] == prior
        assert len(run.history) == 3
        assert run.history[-1].timestamp >= run.history[-2].timestamp

    def test_plan_is_carried_over(self) -> None:
        plan = Plan(title="Refactor", steps=["a", "b"])

        run = translate_run(_record("running"), [], plan=plan)

        assert run.current_plan == plan

    def test_plan_defaults_to_none(self) -> None:
        assert translate_run(_record("running"), []).current_plan is None


def test_history_from_logs() -> None:
    logs = [
        AgentRunLog(message_type="ACTION", thought="Reading the repo"),
        AgentRunLog(message_type="ACTION"),
        AgentRunLog(message_type="ERROR", observation="Tool crashed"),
        AgentRunLog(message_type="FINAL_ANSWER", observation={"summary": "done"}),
    ]

    history = history_from_logs(4242, logs)

    assert [(e.type, e.content) for e in history] == [
        (HistoryEntryType.status, "Agent run ID: 4242"),
        (HistoryEntryType.status, "Reading the repo"),
        (HistoryEntryType.error, "Tool crashed"),
        (HistoryEntryType.response, '{"summary": "done"}'),
    ]
    timestamps = [e.timestamp for e in history]
    assert timestamps == sorted(timestamps)
