"""Translate remote run records into local ``AgentRun`` values.

``translate_run`` is pure apart from timestamping the entry it appends. Rules
are evaluated in priority order and the first match wins:

1. ``failed``/``cancelled``  -> ``ERROR``
2. any pull request          -> ``PR_CREATED``
3. ``paused``                -> ``RESPONSE_DEFAULT``
4. ``completed``             -> ``IDLE`` (callers stop polling)
5. anything else             -> ``RUNNING``

Explicit failure therefore beats a created pull request, and a created pull
request beats a paused or completed raw status.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, List, Optional, Sequence

from runboard_ai.agent_client.schemas.dto import AgentRunLog, RemoteRunRecord

from .schemas.domain import AgentRun, AgentRunStatus, HistoryEntry, HistoryEntryType, Plan

FAILED_FALLBACK = "Agent run failed without a message."
PAUSED_FALLBACK = "Agent is paused and awaiting input."
COMPLETED_FALLBACK = "Agent run complete."
WORKING_MESSAGE = "Agent is actively working..."

FAILURE_STATUSES = frozenset({"failed", "cancelled"})


def translate_run(
    record: RemoteRunRecord,
    prior_history: Sequence[HistoryEntry],
    *,
    plan: Optional[Plan] = None,
) -> AgentRun:
    status = record.normalized_status

    if status in FAILURE_STATUSES:
        local, entry = AgentRunStatus.ERROR, HistoryEntry(
            type=HistoryEntryType.error, content=record.result or FAILED_FALLBACK
        )
    elif record.pull_requests:
        pr = record.pull_requests[0]
        local, entry = AgentRunStatus.PR_CREATED, HistoryEntry(
            type=HistoryEntryType.response,
            content=f'Pull Request #{pr.id} has been created: "{pr.title}".',
        )
    elif status == "paused":
        local, entry = AgentRunStatus.RESPONSE_DEFAULT, HistoryEntry(
            type=HistoryEntryType.response, content=record.result or PAUSED_FALLBACK
        )
    elif status == "completed":
        local, entry = AgentRunStatus.IDLE, HistoryEntry(
            type=HistoryEntryType.response, content=record.result or COMPLETED_FALLBACK
        )
    else:
        local, entry = AgentRunStatus.RUNNING, HistoryEntry(type=HistoryEntryType.status, content=WORKING_MESSAGE)

    return AgentRun(run_id=record.id, status=local, history=[*prior_history, entry], current_plan=plan)


def _observation_text(observation: Any) -> str:
    return observation if isinstance(observation, str) else json.dumps(observation)


def history_from_logs(run_id: int, logs: Iterable[AgentRunLog]) -> List[HistoryEntry]:
    """Rebuild a readable history from the remote run's log lines.

    Final answers become responses, errors become error entries, and any
    other line with a thought becomes a status entry. Log timestamps are not
    reused: entries are stamped in arrival order to keep history monotone.
    """
    history = [HistoryEntry(type=HistoryEntryType.status, content=f"Agent run ID: {run_id}")]
    for log in logs:
        if log.message_type == "FINAL_ANSWER" and log.observation:
            history.append(HistoryEntry(type=HistoryEntryType.response, content=_observation_text(log.observation)))
        elif log.message_type == "ERROR" and log.observation:
            history.append(HistoryEntry(type=HistoryEntryType.error, content=_observation_text(log.observation)))
        elif log.thought:
            history.append(HistoryEntry(type=HistoryEntryType.status, content=log.thought))
    return history
