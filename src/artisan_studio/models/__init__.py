"""Pydantic models for Artisan Studio."""

from artisan_studio.models.api import (
    CancelResponse,
    GenerateRequest,
    HealthResponse,
    MediaItem,
    ProjectDetail,
    ProjectStatus,
    ProjectSummary,
    StoredMessage,
    ToolInfo,
    UploadFileInfo,
    UploadRequest,
    UploadResponse,
    UploadTicket,
)
from artisan_studio.models.conversation import (
    DEFAULT_MESSAGE_METADATA,
    FilePart,
    Message,
    MessagePart,
    TextPart,
    TokenUsage,
    ToolCallPart,
    ToolResultPart,
)
from artisan_studio.models.media import (
    DEFAULT_CONTENT_TYPES,
    DataOutput,
    Dimensions,
    MediaFile,
    MediaFileDescriptor,
    MediaKind,
    MediaOutput,
    ToolOutput,
    parse_tool_output,
)
from artisan_studio.models.messages import (
    CompleteEvent,
    ErrorEvent,
    ProjectMetadataEvent,
    SSEEvent,
    StartEvent,
    TokenEvent,
    ToolCallEvent,
    ToolResultEvent,
    get_event_type,
)

__all__ = [
    # Transcript models
    "DEFAULT_MESSAGE_METADATA",
    "FilePart",
    "Message",
    "MessagePart",
    "TextPart",
    "TokenUsage",
    "ToolCallPart",
    "ToolResultPart",
    # Media models
    "DEFAULT_CONTENT_TYPES",
    "DataOutput",
    "Dimensions",
    "MediaFile",
    "MediaFileDescriptor",
    "MediaKind",
    "MediaOutput",
    "ToolOutput",
    "parse_tool_output",
    # SSE event models
    "StartEvent",
    "TokenEvent",
    "ToolCallEvent",
    "ToolResultEvent",
    "ProjectMetadataEvent",
    "CompleteEvent",
    "ErrorEvent",
    "SSEEvent",
    "get_event_type",
    # API models
    "CancelResponse",
    "GenerateRequest",
    "HealthResponse",
    "MediaItem",
    "ProjectDetail",
    "ProjectStatus",
    "ProjectSummary",
    "StoredMessage",
    "ToolInfo",
    "UploadFileInfo",
    "UploadRequest",
    "UploadResponse",
    "UploadTicket",
]
