"""Run lifecycle for dashboard projects.

- ``translate_run`` / ``history_from_logs``: remote records to local values.
- ``RunPoller``: wait for a remote run to settle.
- ``AgentRunService``: start/continue/confirm/modify/refresh operations.
- ``ProjectStore``: dashboard projects over a key-value store.
- ``ValidationPipeline``: pull-request validation stages over a backend.
"""

from .polling import RunPoller
from .projects import (
    InMemoryKeyValueStore,
    KeyValueStore,
    ProjectAlreadyExistsError,
    ProjectNotFoundError,
    ProjectStore,
)
from .schemas import (
    AgentRun,
    AgentRunStatus,
    Credentials,
    HistoryEntry,
    HistoryEntryType,
    Plan,
    Project,
    ProjectSettings,
    PullRequestRef,
)
from .service import AgentRunService, build_prompt, propose_plan
from .translator import history_from_logs, translate_run
from .validation import ValidationBackend, ValidationPipeline, ValidationReport, begin_validation, finish_validation

__all__ = [
    "AgentRun",
    "AgentRunService",
    "AgentRunStatus",
    "Credentials",
    "HistoryEntry",
    "HistoryEntryType",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "Plan",
    "Project",
    "ProjectAlreadyExistsError",
    "ProjectNotFoundError",
    "ProjectSettings",
    "ProjectStore",
    "PullRequestRef",
    "RunPoller",
    "ValidationBackend",
    "ValidationPipeline",
    "ValidationReport",
    "begin_validation",
    "build_prompt",
    "finish_validation",
    "history_from_logs",
    "propose_plan",
    "translate_run",
]
