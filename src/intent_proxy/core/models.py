"""Domain models for the intent proxy."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(UTC)


class AgentMessage(BaseModel):
    """Chat message exchanged with the LiteLLM gateway."""

    role: str = Field(description="Chat role such as 'user', 'assistant' or 'system'.")
    content: str = Field(description="Natural language content of the message.")


class HealthStatus(BaseModel):
    """Lightweight health payload for monitoring."""

    status: str = Field(default="ok")
    detail: str | None = None


class AgentDescriptor(BaseModel):
    """A registered downstream agent."""

    name: str = Field(description="Unique human readable agent name.")
    url: str = Field(description="Base URL of the agent; unique key of the directory.")
    description: str = Field(description="Free text description of the agent's capabilities.")
    last_seen_at: datetime = Field(default_factory=utcnow)


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{field} must not be blank")
    return value.strip()


class RegisterAgentRequest(BaseModel):
    """Inbound payload for ``POST /registry/register``."""

    name: str
    url: str
    description: str

    @field_validator("name", "url", "description")
    @classmethod
    def _not_blank(cls, value: str, info: ValidationInfo) -> str:
        return _require_text(value, info.field_name)

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class ExecuteRequest(BaseModel):
    """Inbound payload for ``POST /proxy/execute``."""

    model_config = ConfigDict(populate_by_name=True)

    intent: str = Field(
        validation_alias=AliasChoices("intent", "userIntent"),
        description="Free text statement of the desired action.",
    )
    target_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("targetUrl", "target_url"),
        description="Optional explicit agent URL; enables direct mode.",
    )
    session_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sessionId", "session_id"),
        description="Optional session identifier to preserve context across calls.",
    )

    @field_validator("intent")
    @classmethod
    def _intent_not_blank(cls, value: str) -> str:
        return _require_text(value, "intent")

    @field_validator("target_url", "session_id")
    @classmethod
    def _blank_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()


class CallSpec(BaseModel):
    """A resolved description of exactly one HTTP call to a target agent."""

    method: str = Field(default="POST", description="HTTP method, upper-cased.")
    endpoint: str = Field(description="Path appended to the agent base URL.")
    body: Any = Field(default=None, description="JSON body template sent with the call.")
    reasoning: str = Field(
        default="No reasoning provided.",
        description="Why the translator picked this endpoint and payload.",
    )

    @field_validator("method", mode="before")
    @classmethod
    def _normalise_method(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            return "POST"
        return str(value).strip().upper()

    @field_validator("endpoint")
    @classmethod
    def _normalise_endpoint(cls, value: str) -> str:
        path = value.strip()
        if not path:
            raise ValueError("endpoint must not be blank")
        return path if path.startswith("/") else f"/{path}"


class CallMapping(BaseModel):
    """Cached call specification for a (target URL, intent fingerprint) pair."""

    target_url: str
    intent_fingerprint: str
    call_spec: CallSpec
    created_at: datetime = Field(default_factory=utcnow)


class ConversationTurn(BaseModel):
    """One entry of a session's history."""

    role: Literal["user", "agent-summary"]
    text: str


class ConversationSession(BaseModel):
    """Ordered turn history shared by the requests of one caller."""

    session_id: str
    history: list[ConversationTurn] = Field(default_factory=list)
    last_updated_at: datetime = Field(default_factory=utcnow)


class Task(BaseModel):
    """One step of a decomposed plan."""

    model_config = ConfigDict(populate_by_name=True)

    agent_name: str = Field(alias="agentName")
    sub_intent: str = Field(alias="subIntent")
    reasoning: str = Field(default="")


class CallSource(str, Enum):
    """Where the call specification used for a dispatch came from."""

    CACHE = "CACHE"
    TRANSLATED = "TRANSLATED"


class ExecutionResult(BaseModel):
    """Outcome of a successful single-request execution."""

    source: CallSource
    reasoning: str
    summary: str
    raw_response: Any = None


class ProgressEvent(BaseModel):
    """A single line of the execution progress stream."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["status", "plan", "result", "error", "healing", "done"]
    message: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")
    tasks: list[Task] | None = None
    agent: str | None = None
    action: str | None = None
    reasoning: str | None = None
    summary: str | None = None
    result: Any = None
    source: CallSource | None = None
    code: str | None = None

    def to_line(self) -> str:
        """Serialise the event as one NDJSON line."""

        return self.model_dump_json(by_alias=True, exclude_none=True) + "\n"


__all__ = [
    "AgentDescriptor",
    "AgentMessage",
    "CallMapping",
    "CallSource",
    "CallSpec",
    "ConversationSession",
    "ConversationTurn",
    "ExecuteRequest",
    "ExecutionResult",
    "HealthStatus",
    "ProgressEvent",
    "RegisterAgentRequest",
    "Task",
    "utcnow",
]
