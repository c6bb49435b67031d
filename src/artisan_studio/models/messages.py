"""SSE event models for streaming responses."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

from artisan_studio.models.conversation import TokenUsage


class StartEvent(BaseModel):
    """Run started; carries the id the assistant message will be saved under."""

    message_id: str


class TokenEvent(BaseModel):
    """Streaming text token event."""

    token: str
    cumulative: str


class ToolCallEvent(BaseModel):
    """Tool call event with status tracking."""

    id: str
    tool_name: str
    arguments: dict[str, Any]
    status: Literal["pending", "executing", "complete", "error"]


class ToolResultEvent(BaseModel):
    """Tool execution result event."""

    tool_call_id: str
    tool_name: str
    result: Any
    is_error: bool
    latency_ms: int


class ProjectMetadataEvent(BaseModel):
    """Out-of-band project update (new title). Not part of the transcript."""

    id: str
    title: str
    transient: bool = True


class CompleteEvent(BaseModel):
    """Response completion event."""

    message_id: str
    response: str
    usage: TokenUsage | None = None


class ErrorEvent(BaseModel):
    """Error event."""

    code: str
    message: str
    retryable: bool


SSEEvent = (
    StartEvent
    | TokenEvent
    | ToolCallEvent
    | ToolResultEvent
    | ProjectMetadataEvent
    | CompleteEvent
    | ErrorEvent
)

TERMINAL_EVENT_TYPES = frozenset({"complete", "error"})


def get_event_type(event: SSEEvent) -> str:
    """Get the SSE event type string for an event."""
    if isinstance(event, StartEvent):
        return "start"
    if isinstance(event, TokenEvent):
        return "token"
    if isinstance(event, ToolCallEvent):
        return "tool_call"
    if isinstance(event, ToolResultEvent):
        return "tool_result"
    if isinstance(event, ProjectMetadataEvent):
        return "project_metadata"
    if isinstance(event, CompleteEvent):
        return "complete"
    if isinstance(event, ErrorEvent):
        return "error"
    msg = f"Unknown event type: {type(event)}"
    raise ValueError(msg)
