"""Project run manager - connects persistence, the orchestrator and the broker."""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from artisan_studio.db.tables import UNTITLED_PROJECT
from artisan_studio.errors import GenerationCancelled
from artisan_studio.generation import ExecutionContext
from artisan_studio.logging import get_logger, log_context
from artisan_studio.models import (
    CompleteEvent,
    ErrorEvent,
    Message,
    ProjectMetadataEvent,
    SSEEvent,
    StartEvent,
    TextPart,
    TokenEvent,
    ToolCallEvent,
    ToolCallPart,
    ToolResultEvent,
    ToolResultPart,
)

if TYPE_CHECKING:
    from artisan_studio.db import ProjectRepository, ProjectRow
    from artisan_studio.models import MediaFile
    from artisan_studio.orchestrator import AgentOrchestrator
    from artisan_studio.stream import StreamBroker

logger = get_logger(__name__)

GENERIC_FAILURE_MESSAGE = "An unexpected error occurred, please try again."


class InvalidPrompt(ValueError):
    """The transcript has no usable user message."""

    def __init__(self) -> None:
        super().__init__("A valid user message with text or files is required.")


class RunInProgress(RuntimeError):
    """The project already has an active run."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"A generation is already running for project {project_id}")


class AssistantMessageBuilder:
    """Assembles the assistant message from run events, parts in order."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        self.parts: list[TextPart | ToolCallPart | ToolResultPart] = []

    def add(self, event: SSEEvent) -> None:
        if isinstance(event, TokenEvent):
            if self.parts and isinstance(self.parts[-1], TextPart):
                self.parts[-1].text += event.token
            else:
                self.parts.append(TextPart(text=event.token))
        elif isinstance(event, ToolCallEvent):
            self.parts.append(
                ToolCallPart(
                    tool_call_id=event.id,
                    tool_name=event.tool_name,
                    input=event.arguments,
                )
            )
        elif isinstance(event, ToolResultEvent):
            self.parts.append(
                ToolResultPart(
                    tool_call_id=event.tool_call_id,
                    tool_name=event.tool_name,
                    output=event.result,
                    is_error=event.is_error,
                )
            )

    def build(self) -> Message:
        return Message(id=self.message_id, role="assistant", parts=list(self.parts))


@dataclass
class ActiveRun:
    """A run executing in the background."""

    task: asyncio.Task
    cancel_event: asyncio.Event
    stream_id: str


def last_user_message(messages: list[Message]) -> Message | None:
    for message in reversed(messages):
        if message.role == "user":
            return message
    return None


class ProjectManager:
    """Manages the generation run lifecycle of projects.

    A run executes as a background task that publishes its events to the
    stream broker, so it outlives the HTTP request that started it and any
    number of clients can follow it.
    """

    def __init__(
        self,
        repository: ProjectRepository,
        orchestrator: AgentOrchestrator,
        broker: StreamBroker,
    ) -> None:
        """Initialize the manager.

        Args:
            repository: Project persistence.
            orchestrator: Agent orchestrator.
            broker: Stream broker runs publish into.
        """
        self.repository = repository
        self.orchestrator = orchestrator
        self.broker = broker
        self._runs: dict[str, ActiveRun] = {}
        # Serializes the check-and-register step of start() per project
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def is_running(self, project_id: str) -> bool:
        run = self._runs.get(project_id)
        return run is not None and not run.task.done()

    async def start(self, project_id: str, user_id: str, messages: list[Message]) -> str:
        """Persist the transcript and start a run in the background.

        Args:
            project_id: Project to run; created for the user on first contact.
            user_id: Calling user.
            messages: Full transcript sent by the client.

        Returns:
            The stream id of the new run.

        Raises:
            ProjectAccessDenied: If the project belongs to another user.
            InvalidPrompt: If the last user message has no text and no file.
            RunInProgress: If the project already has an active run.
        """
        async with self._locks[project_id]:
            project = await self.repository.get_or_create_project(project_id, user_id)
            if self.is_running(project_id):
                raise RunInProgress(project_id)

            await self.repository.upsert_messages(project_id, messages)
            prompt = last_user_message(messages)
            if prompt is None or not prompt.has_content():
                raise InvalidPrompt()

            stream_id = str(uuid.uuid4())
            await self.repository.start_run(project_id, stream_id)

            cancel_event = asyncio.Event()
            task = asyncio.create_task(
                self._run(project, user_id, messages, prompt, stream_id, cancel_event),
                name=f"generation-{project_id}",
            )
            run = ActiveRun(task=task, cancel_event=cancel_event, stream_id=stream_id)
            self._runs[project_id] = run
            task.add_done_callback(lambda _: self._forget(project_id, run))

        logger.info("Run started", project_id=project_id, user_id=user_id, stream_id=stream_id)
        return stream_id

    def _forget(self, project_id: str, run: ActiveRun) -> None:
        if self._runs.get(project_id) is run:
            del self._runs[project_id]

    async def cancel(self, project_id: str, user_id: str) -> bool:
        """Cancel the active run of a project.

        Returns:
            True if a run was cancelled, False if none was active.

        Raises:
            ProjectNotFoundError: If the project isn't the user's.
        """
        await self.repository.get_project(project_id, user_id)
        run = self._runs.get(project_id)
        if run is None or run.task.done():
            return False

        run.cancel_event.set()
        run.task.cancel()
        logger.info("Run cancel requested", project_id=project_id, stream_id=run.stream_id)
        return True

    async def shutdown(self) -> None:
        """Cancel all active runs and wait for them to clean up."""
        runs = list(self._runs.values())
        for run in runs:
            run.cancel_event.set()
            run.task.cancel()
        if runs:
            await asyncio.gather(*(run.task for run in runs), return_exceptions=True)

    async def _run(
        self,
        project: ProjectRow,
        user_id: str,
        messages: list[Message],
        prompt: Message,
        stream_id: str,
        cancel_event: asyncio.Event,
    ) -> None:
        project_id = project.id
        message_id = str(uuid.uuid4())

        with log_context(project_id=project_id, user_id=user_id, stream_id=stream_id):
            try:
                await self.broker.publish(stream_id, StartEvent(message_id=message_id))
                if project.title == UNTITLED_PROJECT:
                    await self._name_project(project_id, stream_id, prompt)
                await self._stream_agent(
                    project_id, user_id, messages, stream_id, message_id, cancel_event
                )
            except asyncio.CancelledError:
                await self._finish_cancelled(project_id, stream_id)
                raise
            except GenerationCancelled:
                await self._finish_cancelled(project_id, stream_id)
            except Exception:
                logger.exception("Generation error")
                await self._finish_failed(project_id, stream_id)
            finally:
                await self._close_stream(stream_id)

    async def _name_project(self, project_id: str, stream_id: str, prompt: Message) -> None:
        """Give a new project a title. Failures are logged and ignored."""
        title = await self.orchestrator.generate_title(prompt)
        if not title:
            return
        try:
            await self.repository.set_title(project_id, title)
        except Exception:
            logger.exception("Failed to save project title")
            return
        logger.info("Project titled", title=title)
        await self.broker.publish(stream_id, ProjectMetadataEvent(id=project_id, title=title))

    async def _stream_agent(
        self,
        project_id: str,
        user_id: str,
        messages: list[Message],
        stream_id: str,
        message_id: str,
        cancel_event: asyncio.Event,
    ) -> None:
        builder = AssistantMessageBuilder(message_id)
        context = ExecutionContext(user_id=user_id, project_id=project_id)

        async def record_media(files: list[MediaFile]) -> None:
            await self.repository.insert_media_files(user_id, project_id, files)

        async for event in self.orchestrator.run_stream(
            messages, context, message_id, cancel_event, record_media
        ):
            if isinstance(event, CompleteEvent):
                # Persist before clients learn the run is done
                await self.repository.complete_run(project_id, builder.build())
                logger.info(
                    "Run complete",
                    parts=len(builder.parts),
                    tokens=(
                        event.usage.prompt_tokens + event.usage.completion_tokens
                        if event.usage
                        else None
                    ),
                )
            else:
                builder.add(event)
            await self.broker.publish(stream_id, event)

    async def _finish_cancelled(self, project_id: str, stream_id: str) -> None:
        # Don't save partial response on cancellation
        logger.info("Generation cancelled")
        try:
            await self.repository.cancel_run(project_id)
            await self.broker.publish(
                stream_id,
                ErrorEvent(code="CANCELLED", message="Generation cancelled", retryable=False),
            )
        except Exception:
            logger.exception("Failed to record cancellation")

    async def _finish_failed(self, project_id: str, stream_id: str) -> None:
        try:
            await self.repository.fail_run(project_id)
        except Exception:
            logger.exception("Failed to mark project as errored after generation failure")
        try:
            await self.broker.publish(
                stream_id,
                ErrorEvent(code="GENERATION_ERROR", message=GENERIC_FAILURE_MESSAGE, retryable=True),
            )
        except Exception:
            logger.exception("Failed to publish generation error")

    async def _close_stream(self, stream_id: str) -> None:
        try:
            await self.broker.complete(stream_id)
        except Exception:
            logger.exception("Failed to complete stream")
