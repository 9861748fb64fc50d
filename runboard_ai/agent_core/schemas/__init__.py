from .domain import (
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

__all__ = [
    "AgentRun",
    "AgentRunStatus",
    "Credentials",
    "HistoryEntry",
    "HistoryEntryType",
    "Plan",
    "Project",
    "ProjectSettings",
    "PullRequestRef",
]
