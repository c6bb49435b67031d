"""Request and response bodies for the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from artisan_studio.models.conversation import Message

ProjectStatus = Literal["submitted", "streaming", "ready", "error"]


class GenerateRequest(BaseModel):
    """Body of POST /api/generate."""

    id: str = Field(min_length=1)
    messages: list[Message]


class CancelResponse(BaseModel):
    """Response body for cancel endpoint."""

    cancelled: bool


class HealthResponse(BaseModel):
    """Response body for health check."""

    status: str
    tool_count: int


class ToolInfo(BaseModel):
    """Public description of one agent tool."""

    name: str
    description: str
    input_schema: dict[str, Any]


class StoredMessage(BaseModel):
    """A persisted transcript message."""

    id: str
    role: str
    parts: list[dict[str, Any]]
    metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class ProjectDetail(BaseModel):
    """A project with its transcript."""

    id: str
    title: str
    status: ProjectStatus
    messages: list[StoredMessage]
    resume: bool


class ProjectSummary(BaseModel):
    """One row of the project listing."""

    id: str
    title: str
    status: ProjectStatus
    last_message_at: datetime
    media_count: int
    message_count: int
    latest_image: str | None
    created_at: datetime
    updated_at: datetime


class MediaItem(BaseModel):
    """One row of the media library listing."""

    id: str
    project_id: str
    type: str
    content_type: str
    url: str
    created_at: datetime


class UploadFileInfo(BaseModel):
    """A file the client is about to upload."""

    name: str
    type: str
    size: int = Field(ge=0)


class UploadRequest(BaseModel):
    """Body of POST /api/uploads."""

    files: list[UploadFileInfo]


class UploadTicket(BaseModel):
    """Where to PUT one file, and the URL it will be served from."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Literal["new"] = "new"
    upload_url: str
    image_url: str
    filename: str


class UploadResponse(BaseModel):
    """Response body of POST /api/uploads."""

    success: bool = True
    uploads: list[UploadTicket]
