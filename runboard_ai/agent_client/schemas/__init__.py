from .dto import (
    AgentRunLog,
    AgentRunLogsPage,
    AgentRunsPage,
    CreateAgentRunRequest,
    RemotePullRequest,
    RemoteRunRecord,
    ResumeAgentRunRequest,
)

__all__ = [
    "AgentRunLog",
    "AgentRunLogsPage",
    "AgentRunsPage",
    "CreateAgentRunRequest",
    "RemotePullRequest",
    "RemoteRunRecord",
    "ResumeAgentRunRequest",
]
