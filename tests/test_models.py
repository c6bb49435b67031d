"""Tests for Pydantic models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from artisan_studio.models import (
    CompleteEvent,
    DataOutput,
    ErrorEvent,
    FilePart,
    MediaFile,
    MediaOutput,
    Message,
    ProjectMetadataEvent,
    StartEvent,
    TextPart,
    TokenEvent,
    TokenUsage,
    ToolCallEvent,
    ToolCallPart,
    ToolResultEvent,
    get_event_type,
    parse_tool_output,
)


class TestMessage:
    """Tests for transcript messages."""

    def test_parts_are_discriminated(self) -> None:
        """Parts are parsed by their type tag."""
        message = Message.model_validate(
            {
                "id": "m1",
                "role": "assistant",
                "parts": [
                    {"type": "text", "text": "Here you go"},
                    {"type": "tool-call", "tool_call_id": "c1", "tool_name": "text-to-image"},
                    {"type": "file", "url": "https://x/y.png", "media_type": "image/png"},
                ],
            }
        )
        assert isinstance(message.parts[0], TextPart)
        assert isinstance(message.parts[1], ToolCallPart)
        assert isinstance(message.parts[2], FilePart)

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Message(id="", role="user")

    def test_has_content(self) -> None:
        """Blank text alone is not content; a file is."""
        assert not Message(id="m1", role="user", parts=[TextPart(text="   ")]).has_content()
        assert Message(id="m1", role="user", parts=[FilePart(url="https://x/a.png")]).has_content()
        assert Message(id="m1", role="user", parts=[TextPart(text="hi")]).has_content()

    def test_with_file_list_appends_listing(self) -> None:
        """Attachments are listed as numbered text."""
        message = Message(
            id="m1",
            role="user",
            parts=[
                TextPart(text="Animate these"),
                FilePart(url="https://x/a.png"),
                FilePart(url="https://x/b.png"),
            ],
        )
        listed = message.with_file_list()
        assert listed.parts[-1].text == (
            "Attached File List:\n  Image 1: https://x/a.png\n  Image 2: https://x/b.png"
        )
        # Original is untouched
        assert len(message.parts) == 3

    def test_with_file_list_without_files(self) -> None:
        message = Message(id="m1", role="user", parts=[TextPart(text="hi")])
        assert message.with_file_list() is message


class TestSSEEventModels:
    """Tests for SSE event models."""

    def test_get_event_type(self) -> None:
        """Each event maps to its SSE event name."""
        assert get_event_type(StartEvent(message_id="m1")) == "start"
        assert get_event_type(TokenEvent(token="a", cumulative="a")) == "token"
        assert (
            get_event_type(
                ToolCallEvent(id="c1", tool_name="t", arguments={}, status="executing")
            )
            == "tool_call"
        )
        assert (
            get_event_type(
                ToolResultEvent(
                    tool_call_id="c1", tool_name="t", result={}, is_error=False, latency_ms=1
                )
            )
            == "tool_result"
        )
        assert get_event_type(ProjectMetadataEvent(id="p1", title="Fox")) == "project_metadata"
        assert get_event_type(CompleteEvent(message_id="m1", response="")) == "complete"
        assert (
            get_event_type(ErrorEvent(code="X", message="boom", retryable=False)) == "error"
        )

    def test_project_metadata_is_transient(self) -> None:
        assert ProjectMetadataEvent(id="p1", title="Fox").transient is True

    def test_complete_event_usage(self) -> None:
        event = CompleteEvent(
            message_id="m1",
            response="done",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5),
        )
        assert event.usage.prompt_tokens == 10


class TestToolOutput:
    """Tests for tool output parsing."""

    def test_parse_media_output(self) -> None:
        output = parse_tool_output(
            {
                "type": "media",
                "files": [
                    {"url": "https://m/a.png", "content_type": "image/png", "media_kind": "image"}
                ],
            }
        )
        assert isinstance(output, MediaOutput)
        assert output.files[0] == MediaFile(
            url="https://m/a.png", content_type="image/png", media_kind="image"
        )

    def test_parse_data_output(self) -> None:
        output = parse_tool_output({"type": "data", "payload": {"duration": 5.0}})
        assert isinstance(output, DataOutput)
        assert output.format == "json"

    def test_non_output_values(self) -> None:
        """Retry prompts and other values are not tool outputs."""
        assert parse_tool_output("text-to-image failed: boom") is None
        assert parse_tool_output({"files": []}) is None
