"""Generation adapter: remote model call, extraction and re-hosting."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from artisan_studio.errors import GenerationCancelled, InvalidContext, UnextractableResponse
from artisan_studio.extractor import extract_files, match_shape
from artisan_studio.logging import get_logger
from artisan_studio.models.media import MediaFile
from artisan_studio.registry import CapabilityKey, lookup

if TYPE_CHECKING:
    from artisan_studio.fal_client import FalClient
    from artisan_studio.storage import MediaUploader

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExecutionContext:
    """Who a tool call runs for. Lives only as long as one agent run."""

    user_id: str
    project_id: str
    tool_call_id: str = ""

    def validate(self) -> None:
        """Raise InvalidContext unless user and project are set."""
        if not self.user_id or not self.project_id:
            raise InvalidContext()

    def for_call(self, tool_call_id: str) -> ExecutionContext:
        """Copy of this context scoped to one tool call."""
        return ExecutionContext(self.user_id, self.project_id, tool_call_id)


class GenerationResult(BaseModel):
    """Files produced by one generation."""

    files: list[MediaFile]


class GenerationAdapter:
    """Runs a capability end to end and returns re-hosted files."""

    def __init__(self, fal: FalClient, uploader: MediaUploader) -> None:
        self.fal = fal
        self.uploader = uploader

    async def generate(
        self,
        key: CapabilityKey | str,
        input: dict[str, Any],
        context: ExecutionContext,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationResult:
        """Generate media for a capability.

        Args:
            key: Capability to run.
            input: Remote model input (already validated and mapped).
            context: Execution context; files are stored under its user.
            cancel_event: Optional cancellation signal.

        Returns:
            The re-hosted files.

        Raises:
            UnknownCapability: If the key is not registered.
            UnextractableResponse: If the response shape is not recognized.
            UploadFailed: If re-hosting fails.
            RemoteInvocationError: If the remote call fails.
            GenerationCancelled: If cancelled before or during the call.
        """
        binding = lookup(key)

        logger.info(
            "Invoking model",
            capability=binding.capability_key.value,
            model_id=binding.remote_model_id,
            tool_call_id=context.tool_call_id,
        )
        data = await self.fal.subscribe(binding.remote_model_id, input, cancel_event)

        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled(binding.remote_model_id)

        try:
            descriptors = extract_files(data, binding.media_kind)
        except UnextractableResponse:
            logger.error(
                "Unrecognized model response",
                model_id=binding.remote_model_id,
                keys=sorted(data) if isinstance(data, dict) else type(data).__name__,
            )
            raise
        logger.debug(
            "Extracted files",
            model_id=binding.remote_model_id,
            shape=match_shape(data),
            count=len(descriptors),
        )

        files = await self.uploader.upload(descriptors, context.user_id, binding.media_kind)
        return GenerationResult(files=files)
