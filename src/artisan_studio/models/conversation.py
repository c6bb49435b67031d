"""Chat transcript models: messages and their typed parts."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

DEFAULT_MESSAGE_METADATA: dict[str, Any] = {"mode": "image"}


class TextPart(BaseModel):
    """Plain text segment."""

    type: Literal["text"] = "text"
    text: str


class FilePart(BaseModel):
    """Reference to an attached or generated file."""

    type: Literal["file"] = "file"
    url: str
    media_type: str | None = None
    filename: str | None = None


class ToolCallPart(BaseModel):
    """A tool invocation requested by the assistant."""

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultPart(BaseModel):
    """Outcome of a tool invocation."""

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    output: Any = None
    is_error: bool = False


MessagePart = Annotated[
    TextPart | FilePart | ToolCallPart | ToolResultPart,
    Field(discriminator="type"),
]


class Message(BaseModel):
    """A single transcript message as exchanged with the browser."""

    id: str = Field(min_length=1)
    role: Literal["user", "assistant", "system"]
    parts: list[MessagePart] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None

    @property
    def text(self) -> str:
        """All text parts joined by newlines."""
        return "\n".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def file_urls(self) -> list[str]:
        """URLs of all file parts, in order."""
        return [p.url for p in self.parts if isinstance(p, FilePart) and p.url]

    def has_content(self) -> bool:
        """True if the message has non-blank text or at least one file."""
        has_text = any(isinstance(p, TextPart) and p.text.strip() for p in self.parts)
        has_file = any(isinstance(p, FilePart) for p in self.parts)
        return has_text or has_file

    def with_file_list(self) -> Message:
        """Copy of this message with an "Attached File List" text part appended.

        The model only sees attachments as URLs, so listing them in text lets it
        pass them on to tools. Messages without files are returned unchanged.
        """
        urls = self.file_urls
        if not urls:
            return self
        listing = "\n".join(f"  Image {i}: {url}" for i, url in enumerate(urls, start=1))
        return self.model_copy(
            update={"parts": [*self.parts, TextPart(text=f"Attached File List:\n{listing}")]}
        )


class TokenUsage(BaseModel):
    """Token usage statistics."""

    prompt_tokens: int
    completion_tokens: int
