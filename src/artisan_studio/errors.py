"""Exception hierarchy for the generation pipeline.

Failures that can reach the agent carry an ``ErrorKind`` assigned where they
are raised, so the tool surface never has to re-derive a category from an
error message.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure buckets surfaced to the agent."""

    NETWORK = "network"
    STORAGE = "storage"
    TIMEOUT = "timeout"
    CONTENT_REJECTED = "content_rejected"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


class ArtisanError(Exception):
    """Base exception for pipeline errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class UnknownCapability(ArtisanError):
    """Capability key is not in the model registry."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Unknown capability: {key}")


class UnextractableResponse(ArtisanError):
    """Remote response matched none of the known envelope shapes."""

    def __init__(self, media_kind: str) -> None:
        self.media_kind = media_kind
        super().__init__(f"Unable to extract files from {media_kind} response")


class UploadFailed(ArtisanError):
    """Re-hosting a generated file failed (origin fetch or storage write)."""

    kind = ErrorKind.STORAGE

    def __init__(
        self,
        media_kind: str,
        cause: BaseException | str,
        failures: list[tuple[str, BaseException]] | None = None,
    ) -> None:
        self.media_kind = media_kind
        self.cause = cause
        # (origin url, error) for every failed item of a batch
        self.failures = failures or []
        super().__init__(f"Failed to upload {media_kind} to storage: {cause}")


class RemoteInvocationError(ArtisanError):
    """The remote generation model call failed."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        status_code: int | None = None,
    ) -> None:
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)


class GenerationCancelled(ArtisanError):
    """The run was cancelled while a remote call was in flight."""

    def __init__(self, model_id: str | None = None) -> None:
        self.model_id = model_id
        message = "Generation cancelled"
        if model_id:
            message = f"Generation cancelled: {model_id}"
        super().__init__(message)


class InvalidContext(ArtisanError):
    """Tool executed without a usable execution context.

    This is a wiring bug, never a user-facing condition.
    """

    def __init__(self) -> None:
        super().__init__("Invalid tool execution context: missing user_id or project_id")


class UnknownTool(ArtisanError):
    """Tool name is not part of the tool surface."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class ToolInputError(ArtisanError):
    """Tool arguments failed schema validation."""

    def __init__(self, tool_name: str, errors: Exception) -> None:
        self.tool_name = tool_name
        self.errors = errors
        super().__init__(f"Invalid input for {tool_name}: {errors}")


class ToolExecutionError(ArtisanError):
    """Classified tool failure with user-actionable guidance."""

    def __init__(self, tool_name: str, kind: ErrorKind, message: str) -> None:
        self.tool_name = tool_name
        self.kind = kind
        super().__init__(message)
