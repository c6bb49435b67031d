"""Tests for the agent tool surface."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import pytest

from artisan_studio.errors import (
    ErrorKind,
    GenerationCancelled,
    InvalidContext,
    RemoteInvocationError,
    ToolExecutionError,
    ToolInputError,
    UnknownTool,
)
from artisan_studio.generation import ExecutionContext
from artisan_studio.models import DataOutput, MediaOutput
from artisan_studio.tools import GUIDANCE, classify_error, tool_error

if TYPE_CHECKING:
    from conftest import FakeFalClient, FakeStorage

    from artisan_studio.tools import ToolSurface

IMAGEN = "fal-ai/imagen4/preview"
CONTEXT = ExecutionContext(user_id="user-1", project_id="project-1", tool_call_id="call-1")
FOX = {"prompt": "a red fox", "aspectRatio": "1:1", "resolution": "1K", "numberOfImages": 1}


class TestToolSurface:
    """Tests for the tool set."""

    def test_tool_names(self, surface: ToolSurface) -> None:
        assert set(surface.names) == {
            "text-to-image",
            "image-to-image",
            "text-to-sound-effect",
            "text-to-speech",
            "text-to-dialogue",
            "text-to-video",
            "image-to-video",
            "lipsync",
            "merge-audio-video",
            "merge-videos",
            "extract-frame",
            "remove-background",
            "upscale-image",
            "upscale-video",
            "extract-metadata",
        }

    def test_every_tool_is_described(self, surface: ToolSurface) -> None:
        for definition in surface.definitions():
            assert definition.description
            assert definition.input_schema()["type"] == "object"

    def test_unknown_tool(self, surface: ToolSurface) -> None:
        with pytest.raises(UnknownTool):
            surface.get("make-coffee")


class TestInvoke:
    """Tests for tool invocation end to end."""

    async def test_text_to_image_rehosts_file(
        self, surface: ToolSurface, fal: FakeFalClient, storage: FakeStorage
    ) -> None:
        """A generated image ends up in storage under a durable URL."""
        output = await surface.invoke("text-to-image", FOX, CONTEXT)

        assert isinstance(output, MediaOutput)
        [file] = output.files
        assert file.media_kind == "image"
        assert file.content_type == "image/png"
        assert file.url.startswith("http://media.test/m/images/user-1/")
        assert file.url.endswith(".png")

        key = file.url.removeprefix("http://media.test/m/")
        assert key in storage.objects
        assert fal.calls == [
            (
                IMAGEN,
                {"prompt": "a red fox", "aspect_ratio": "1:1", "resolution": "1K", "num_images": 1},
            )
        ]

    async def test_merge_videos_rejected_before_remote_call(
        self, surface: ToolSurface, fal: FakeFalClient
    ) -> None:
        """Schema violations never reach the remote model."""
        with pytest.raises(ToolInputError):
            await surface.invoke("merge-videos", {"videoUrls": ["https://x/a.mp4"]}, CONTEXT)
        assert fal.calls == []

    async def test_invalid_context(self, surface: ToolSurface, fal: FakeFalClient) -> None:
        """A missing user is a wiring bug, not a tool failure."""
        with pytest.raises(InvalidContext):
            await surface.invoke("text-to-image", FOX, ExecutionContext("", "project-1"))
        assert fal.calls == []

    async def test_optional_fields_omitted(
        self, surface: ToolSurface, fal: FakeFalClient
    ) -> None:
        """Unset optional inputs are not sent to the remote model."""
        fal.responses["fal-ai/ffmpeg-api/extract-frame"] = {"images": [{"url": "https://x/f.png"}]}
        await surface.invoke("extract-frame", {"videoUrl": "https://x/v.mp4"}, CONTEXT)
        assert fal.calls[-1] == ("fal-ai/ffmpeg-api/extract-frame", {"video_url": "https://x/v.mp4"})

    async def test_image_to_image_drops_aspect_ratio(
        self, surface: ToolSurface, fal: FakeFalClient
    ) -> None:
        fal.responses["fal-ai/gemini-25-flash-image/edit"] = {
            "images": [{"url": "https://x/e.png"}]
        }
        await surface.invoke(
            "image-to-image",
            {
                "prompt": "make it blue",
                "imageUrls": ["https://x/a.png"],
                "aspectRatio": "16:9",
                "numberOfImages": 2,
            },
            CONTEXT,
        )
        _, payload = fal.calls[-1]
        assert payload == {
            "prompt": "make it blue",
            "image_urls": ["https://x/a.png"],
            "num_images": 2,
        }

    async def test_extract_metadata_returns_data(
        self, surface: ToolSurface, fal: FakeFalClient, storage: FakeStorage
    ) -> None:
        """Metadata is returned as data and nothing is uploaded."""
        fal.responses["fal-ai/ffmpeg-api/metadata"] = {"media": {"duration": 5.0}}
        output = await surface.invoke(
            "extract-metadata",
            {"mediaUrl": "https://x/v.mp4", "extractFrames": False},
            CONTEXT,
        )
        assert isinstance(output, DataOutput)
        assert output.payload == {"media": {"duration": 5.0}}
        assert storage.objects == {}

    async def test_cancellation_propagates(self, surface: ToolSurface) -> None:
        cancel_event = asyncio.Event()
        cancel_event.set()
        with pytest.raises(GenerationCancelled):
            await surface.invoke("text-to-image", FOX, CONTEXT, cancel_event)


class TestErrorClassification:
    """Failures become named, actionable tool errors."""

    async def test_rate_limited(self, surface: ToolSurface, fal: FakeFalClient) -> None:
        fal.responses[IMAGEN] = RemoteInvocationError("429", kind=ErrorKind.RATE_LIMITED)
        with pytest.raises(ToolExecutionError) as exc_info:
            await surface.invoke("text-to-image", FOX, CONTEXT)
        assert exc_info.value.kind is ErrorKind.RATE_LIMITED
        assert str(exc_info.value) == (
            "text-to-image failed: Rate limit exceeded. "
            "The user needs to wait before making another request."
        )

    async def test_content_rejected(self, surface: ToolSurface, fal: FakeFalClient) -> None:
        fal.responses[IMAGEN] = RemoteInvocationError(
            "nsfw", kind=ErrorKind.CONTENT_REJECTED, status_code=422
        )
        with pytest.raises(ToolExecutionError, match="content safety filters"):
            await surface.invoke("text-to-image", FOX, CONTEXT)

    async def test_upload_failure_is_storage(
        self, storage: FakeStorage, fal: FakeFalClient
    ) -> None:
        """An origin that refuses the download is a storage failure."""
        from conftest import origin_transport

        from artisan_studio.generation import GenerationAdapter
        from artisan_studio.storage import MediaUploader
        from artisan_studio.tools import ToolSurface

        async with httpx.AsyncClient(transport=origin_transport({"https://x/y.png"})) as client:
            surface = ToolSurface(
                GenerationAdapter(fal, MediaUploader(storage, http_client=client)), fal
            )
            with pytest.raises(ToolExecutionError) as exc_info:
                await surface.invoke("text-to-image", FOX, CONTEXT)

        assert exc_info.value.kind is ErrorKind.STORAGE
        assert str(exc_info.value) == f"text-to-image failed: {GUIDANCE[ErrorKind.STORAGE]}"

    async def test_unrecognized_response(self, surface: ToolSurface, fal: FakeFalClient) -> None:
        fal.responses[IMAGEN] = {"unexpected": True}
        with pytest.raises(ToolExecutionError) as exc_info:
            await surface.invoke("text-to-image", FOX, CONTEXT)
        assert exc_info.value.kind is ErrorKind.UNKNOWN
        assert str(exc_info.value) == (
            "text-to-image failed: Unable to extract files from image response. "
            "This could be due to service unavailability or an internal error."
        )

    def test_unknown_error_keeps_detail(self) -> None:
        error = tool_error("lipsync", RuntimeError("model exploded"))
        assert str(error) == (
            "lipsync failed: model exploded. "
            "This could be due to service unavailability or an internal error."
        )

    def test_unknown_error_without_detail(self) -> None:
        error = tool_error("lipsync", RuntimeError())
        assert "Unknown error occurred during execution" in str(error)

    def test_classify_library_errors(self) -> None:
        """Errors raised outside the pipeline fall back to their type."""
        assert classify_error(httpx.ReadTimeout("slow")) is ErrorKind.TIMEOUT
        assert classify_error(asyncio.TimeoutError()) is ErrorKind.TIMEOUT
        assert classify_error(httpx.ConnectError("refused")) is ErrorKind.NETWORK
        assert classify_error(ValueError("timeout in text")) is ErrorKind.UNKNOWN
