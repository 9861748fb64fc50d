"""DTO models for the remote agent API.

These Pydantic models centralize serialization/deserialization of the remote
run endpoints so that the client stays thin:

- request bodies (`CreateAgentRunRequest`, `ResumeAgentRunRequest`) carry the
  prompt validation rules of the API;
- response bodies (`RemoteRunRecord`, `AgentRunLogsPage`, `AgentRunsPage`) are
  parsed leniently.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from .base import BaseSchema

MAX_PROMPT_LENGTH = 50000
MAX_IMAGES = 10

TERMINAL_STATUSES = frozenset({"completed", "failed", "cancelled"})


class RemotePullRequest(BaseSchema):
    id: int = Field(..., description="Pull request identifier.")
    title: str = Field(default="", description="Pull request title.")
    url: Optional[str] = Field(default=None, description="Link to the pull request.")
    created_at: Optional[str] = None


class RemoteRunRecord(BaseSchema):
    """A remote agent run as returned by create/get/resume."""

    id: int = Field(..., description="Remote run identifier.", examples=[4242])
    status: str = Field(
        default="pending",
        description="Raw remote status: pending/running/active/completed/failed/cancelled/paused.",
    )
    result: Optional[str] = Field(default=None, description="Final or intermediate agent message.")
    pull_requests: List[RemotePullRequest] = Field(
        default_factory=list,
        alias="github_pull_requests",
        description="Pull requests opened by the run.",
    )
    organization_id: Optional[int] = None
    created_at: Optional[str] = None
    web_url: Optional[str] = None
    source_type: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("pull_requests", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def normalized_status(self) -> str:
        return (self.status or "").lower()


class AgentRunLog(BaseSchema):
    agent_run_id: Optional[int] = None
    created_at: Optional[str] = None
    message_type: str = ""
    thought: Optional[str] = None
    tool_name: Optional[str] = None
    tool_input: Optional[Any] = None
    tool_output: Optional[Any] = None
    observation: Optional[Any] = None


class AgentRunLogsPage(BaseSchema):
    id: Optional[int] = None
    organization_id: Optional[int] = None
    logs: List[AgentRunLog] = Field(default_factory=list)
    status: Optional[str] = None
    created_at: Optional[str] = None
    web_url: Optional[str] = None
    result: Optional[str] = None
    total_logs: Optional[int] = None
    page: Optional[int] = None
    size: Optional[int] = None
    pages: Optional[int] = None


class AgentRunsPage(BaseSchema):
    items: List[RemoteRunRecord] = Field(default_factory=list)
    total: int = 0
    page: int = 0
    size: int = 0
    pages: int = 0


def _check_prompt(prompt: str) -> str:
    if not prompt or not prompt.strip():
        raise ValueError("Prompt cannot be empty")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValueError("Prompt cannot exceed 50,000 characters")
    return prompt


class CreateAgentRunRequest(BaseSchema):
    prompt: str
    images: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("prompt")
    @classmethod
    def _valid_prompt(cls, v: str) -> str:
        return _check_prompt(v)

    @field_validator("images")
    @classmethod
    def _valid_images(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and len(v) > MAX_IMAGES:
            raise ValueError("Cannot include more than 10 images")
        return v


class ResumeAgentRunRequest(BaseSchema):
    agent_run_id: int
    prompt: str
    images: Optional[List[str]] = None

    @field_validator("prompt")
    @classmethod
    def _valid_prompt(cls, v: str) -> str:
        return _check_prompt(v)
