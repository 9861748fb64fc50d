from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PLANNING_STATEMENT = (
    "You are an expert software engineer. Analyze the following request and create a robust, "
    "maintainable solution."
)

_clock_lock = threading.Lock()
_last_timestamp: Optional[datetime] = None


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp that never goes backwards within the process."""
    global _last_timestamp
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if _last_timestamp is not None and now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
        return now.isoformat(timespec="microseconds")


class AgentRunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PLAN_PROPOSED = "plan_proposed"
    RESPONSE_DEFAULT = "response_default"
    PR_CREATED = "pr_created"
    VALIDATING_PR = "validating_pr"
    ERROR = "error"


class HistoryEntryType(str, Enum):
    prompt = "prompt"
    status = "status"
    response = "response"
    error = "error"


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: HistoryEntryType
    content: str
    timestamp: str = Field(default_factory=utc_timestamp)


class Plan(BaseModel):
    title: str
    steps: List[str] = Field(default_factory=list)


class AgentRun(BaseModel):
    """Local, UI-facing view of one remote agent run.

    Instances are treated as values: every transition builds a new
    ``AgentRun`` whose history is the previous history plus new entries.
    """

    run_id: Optional[int] = None
    status: AgentRunStatus = AgentRunStatus.IDLE
    history: List[HistoryEntry] = Field(default_factory=list)
    current_plan: Optional[Plan] = None

    @property
    def last_entry(self) -> Optional[HistoryEntry]:
        return self.history[-1] if self.history else None

    def with_entries(self, *entries: HistoryEntry, **changes) -> "AgentRun":
        """Return a copy with ``entries`` appended and ``changes`` applied."""
        return self.model_copy(update={"history": [*self.history, *entries], **changes})


class ProjectSettings(BaseModel):
    planning_statement: str = DEFAULT_PLANNING_STATEMENT
    rules: str = ""
    setup_commands: str = "npm install\nnpm run start"
    branch: str = "main"
    auto_confirm_plan: bool = False
    auto_validate_prs: bool = False


class PullRequestRef(BaseModel):
    id: int
    number: int
    title: str = ""
    html_url: Optional[str] = None
    validation_status: str = "idle"


class Project(BaseModel):
    """A GitHub repository on the dashboard. Owns exactly one ``AgentRun``."""

    id: int
    full_name: str
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    agent_run: AgentRun = Field(default_factory=AgentRun)
    pull_requests: List[PullRequestRef] = Field(default_factory=list)


class Credentials(BaseModel):
    """Per-call access to the remote agent service."""

    org_id: str = Field(..., min_length=1)
    api_token: str = Field(..., min_length=1)
    poll_interval_ms: Optional[int] = Field(default=None, ge=0)
