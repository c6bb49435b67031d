"""Media descriptors and tool output models."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

MediaKind = Literal["image", "video", "audio"]

DEFAULT_CONTENT_TYPES: dict[str, str] = {
    "image": "image/png",
    "video": "video/mp4",
    "audio": "audio/mpeg",
}


class Dimensions(BaseModel):
    """Pixel dimensions of an image or video."""

    width: int
    height: int


class MediaFileDescriptor(BaseModel):
    """A file produced by a remote model, before re-hosting."""

    url: str
    content_type: str | None = None
    media_kind: MediaKind
    size: int | None = None
    duration: float | None = None
    dimensions: Dimensions | None = None


class MediaFile(BaseModel):
    """A re-hosted generated file with a stable public URL."""

    url: str
    content_type: str
    media_kind: MediaKind
    size: int | None = None
    duration: float | None = None
    dimensions: Dimensions | None = None


class MediaOutput(BaseModel):
    """Tool output carrying generated media."""

    type: Literal["media"] = "media"
    files: list[MediaFile]


class DataOutput(BaseModel):
    """Tool output carrying structured data."""

    type: Literal["data"] = "data"
    payload: Any
    format: Literal["json", "csv", "xml", "binary"] = "json"


ToolOutput = Annotated[MediaOutput | DataOutput, Field(discriminator="type")]

tool_output_adapter: TypeAdapter[MediaOutput | DataOutput] = TypeAdapter(ToolOutput)


def parse_tool_output(value: Any) -> MediaOutput | DataOutput | None:
    """Coerce a tool return value into a typed output.

    Returns None for values that are not tool outputs (e.g. retry prompts).
    """
    if isinstance(value, (MediaOutput, DataOutput)):
        return value
    if isinstance(value, dict) and value.get("type") in ("media", "data"):
        return tool_output_adapter.validate_python(value)
    return None
