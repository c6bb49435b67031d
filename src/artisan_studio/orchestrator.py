"""Agent orchestrator using Pydantic AI."""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from pydantic_ai import Agent, ModelRetry, RunContext, Tool
from pydantic_ai.messages import (
    ImageUrl,
    ModelMessage,
    ModelRequest,
    ModelResponse,
    RetryPromptPart,
    SystemPromptPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.messages import TextPart as ModelTextPart
from pydantic_ai.messages import ToolCallPart as ModelToolCallPart

from artisan_studio.errors import ToolExecutionError
from artisan_studio.logging import get_logger
from artisan_studio.models import (
    CompleteEvent,
    FilePart,
    MediaFile,
    MediaOutput,
    Message,
    SSEEvent,
    TextPart,
    TokenEvent,
    TokenUsage,
    ToolCallEvent,
    ToolCallPart,
    ToolResultEvent,
    ToolResultPart,
    parse_tool_output,
)
from artisan_studio.prompts import GENERATE_PROJECT_TITLE_PROMPT, SYSTEM_PROMPT

if TYPE_CHECKING:
    from pydantic_ai.models import Model

    from artisan_studio.generation import ExecutionContext
    from artisan_studio.tools import ToolDefinition, ToolSurface

logger = get_logger(__name__)

# Word chunks that concatenate back to the original text, whitespace included
_WORD_CHUNK = re.compile(r"\s*\S+\s*|\s+")

StepCallback = Callable[[list[MediaFile]], Awaitable[None]]


@dataclass
class RunDeps:
    """Dependencies of one agent run, handed to every tool call."""

    context: ExecutionContext
    cancel_event: asyncio.Event | None = None


class ProjectTitle(BaseModel):
    """Structured output of the title side call."""

    title: str


def _make_tool_wrapper(
    surface: ToolSurface, definition: ToolDefinition
) -> Callable[..., Awaitable[Any]]:
    """Factory function to create a tool wrapper with proper closure capture.

    Pydantic AI builds the tool schema from the wrapper's signature, so the
    single ``params`` argument is annotated with the tool's input model.
    """

    async def wrapper(ctx: RunContext[RunDeps], params: Any) -> Any:
        context = ctx.deps.context.for_call(ctx.tool_call_id or "")
        try:
            output = await surface.execute(definition, params, context, ctx.deps.cancel_event)
        except ToolExecutionError as e:
            # The agent sees the guidance and can tell the user what to do
            raise ModelRetry(str(e)) from e
        return output.model_dump(mode="json")

    wrapper.__name__ = definition.name.replace("-", "_")
    wrapper.__annotations__ = {
        "ctx": RunContext[RunDeps],
        "params": definition.input_model,
        "return": dict[str, Any],
    }
    return wrapper


def create_agent_tools(surface: ToolSurface, max_retries: int = 3) -> list[Tool[RunDeps]]:
    """Create Pydantic AI Tool objects for every tool of the surface."""
    tools = []
    for definition in surface.definitions():
        tools.append(
            Tool(
                function=_make_tool_wrapper(surface, definition),
                name=definition.name,
                description=definition.description,
                takes_ctx=True,
                max_retries=max_retries,
            )
        )
    return tools


def chunk_words(text: str) -> list[str]:
    """Split text into word tokens for smooth streaming."""
    return _WORD_CHUNK.findall(text)


def run_token_usage(run: Any) -> TokenUsage:
    """Token usage of a finished agent run.

    ``AgentRun.usage`` is a method in pydantic-ai 1.x and a property in 2.x.
    """
    usage = run.usage
    if callable(usage):
        usage = usage()
    return TokenUsage(
        prompt_tokens=usage.input_tokens or 0,
        completion_tokens=usage.output_tokens or 0,
    )


def user_content(message: Message) -> list[Any]:
    """Model-facing content of a user message.

    Attachments are listed as text so the agent can pass their URLs to tools;
    images are also attached for the model to look at.
    """
    listed = message.with_file_list()
    content: list[Any] = [listed.text] if listed.text else []
    for part in message.parts:
        if isinstance(part, FilePart) and (part.media_type or "").startswith("image/"):
            content.append(ImageUrl(url=part.url))
    return content


class AgentOrchestrator:
    """Drives the Artisan agent over a transcript and yields SSE events.

    Stateless: each run gets its own Agent, message history and deps.
    """

    def __init__(
        self,
        surface: ToolSurface,
        model: Model | str,
        title_model: Model | str,
        max_steps: int = 20,
        tool_retries: int = 3,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            surface: Tools offered to the agent.
            model: Chat model (pydantic-ai model or "provider:name" string).
            title_model: Model for the title side call.
            max_steps: Maximum model responses per run.
            tool_retries: Failed calls allowed per tool before the run fails.
        """
        self.surface = surface
        self.model = model
        self.title_model = title_model
        self.max_steps = max_steps
        self.tools = create_agent_tools(surface, tool_retries)

    def _build_agent(self) -> Agent[RunDeps, str]:
        return Agent(
            self.model,
            instructions=SYSTEM_PROMPT,
            deps_type=RunDeps,
            tools=self.tools,
        )

    def _build_message_history(self, messages: list[Message]) -> list[ModelMessage]:
        """Build Pydantic AI message history from transcript messages.

        Tool calls whose result never arrived (cancelled runs) are dropped,
        so every call in the history is answered.
        """
        answered = {
            p.tool_call_id
            for m in messages
            for p in m.parts
            if isinstance(p, ToolResultPart)
        }
        result: list[ModelMessage] = []

        for msg in messages:
            if msg.role == "system":
                if msg.text:
                    result.append(ModelRequest(parts=[SystemPromptPart(content=msg.text)]))
            elif msg.role == "user":
                content = user_content(msg)
                if content:
                    result.append(ModelRequest(parts=[UserPromptPart(content=content)]))
            else:
                result.extend(self._assistant_messages(msg, answered))

        return result

    def _assistant_messages(self, msg: Message, answered: set[str]) -> list[ModelMessage]:
        """Split an assistant message into alternating responses and tool returns."""
        out: list[ModelMessage] = []
        response: list[Any] = []
        returns: list[Any] = []

        def flush_response() -> None:
            if response:
                out.append(ModelResponse(parts=list(response)))
                response.clear()

        def flush_returns() -> None:
            if returns:
                out.append(ModelRequest(parts=list(returns)))
                returns.clear()

        for part in msg.parts:
            if isinstance(part, TextPart):
                if not part.text:
                    continue
                flush_returns()
                response.append(ModelTextPart(content=part.text))
            elif isinstance(part, ToolCallPart):
                if part.tool_call_id not in answered:
                    continue
                flush_returns()
                response.append(
                    ModelToolCallPart(
                        tool_name=part.tool_name,
                        args=part.input,
                        tool_call_id=part.tool_call_id,
                    )
                )
            elif isinstance(part, ToolResultPart):
                flush_response()
                if part.is_error:
                    returns.append(
                        RetryPromptPart(
                            content=str(part.output),
                            tool_name=part.tool_name,
                            tool_call_id=part.tool_call_id,
                        )
                    )
                else:
                    returns.append(
                        ToolReturnPart(
                            tool_name=part.tool_name,
                            content=part.output,
                            tool_call_id=part.tool_call_id,
                        )
                    )

        flush_response()
        flush_returns()
        return out

    async def generate_title(self, message: Message) -> str | None:
        """Generate a short project title from the first user message.

        Returns:
            The title, or None if the side call failed.
        """
        agent = Agent(
            self.title_model,
            output_type=ProjectTitle,
            instructions=GENERATE_PROJECT_TITLE_PROMPT,
        )
        try:
            result = await agent.run(user_content(message) or [message.text])
        except Exception:
            logger.exception("Failed to generate project title")
            return None

        title = result.output.title.strip()
        return title[:255] or None

    async def run_stream(
        self,
        messages: list[Message],
        context: ExecutionContext,
        message_id: str,
        cancel_event: asyncio.Event | None = None,
        on_step_finish: StepCallback | None = None,
    ) -> AsyncIterator[SSEEvent]:
        """Execute the agent loop and yield SSE events.

        Text, tool calls and tool results are yielded as each step of the run
        completes. Text is chunked into word tokens to keep the streaming feel.
        Errors propagate to the caller.

        Args:
            messages: Full transcript; the last user message is the prompt.
            context: Execution context of the run.
            message_id: Id the assistant message will be saved under.
            cancel_event: Optional cancellation signal for tool calls.
            on_step_finish: Called after each step with the media it produced.

        Yields:
            TokenEvent, ToolCallEvent and ToolResultEvent as the run
            progresses, then one CompleteEvent.
        """
        prompt_index = max(i for i, m in enumerate(messages) if m.role == "user")
        history = self._build_message_history(messages[:prompt_index])
        prompt = user_content(messages[prompt_index])

        agent = self._build_agent()
        deps = RunDeps(context=context, cancel_event=cancel_event)

        steps = 0
        cumulative_text = ""
        call_started: dict[str, float] = {}

        logger.info("Starting agent run", history_len=len(history), max_steps=self.max_steps)

        async with agent.iter(prompt, message_history=history or None, deps=deps) as run:
            async for node in run:
                if Agent.is_call_tools_node(node):
                    steps += 1
                    for part in node.model_response.parts:
                        if isinstance(part, ModelTextPart) and part.content:
                            if cumulative_text:
                                cumulative_text += "\n\n"
                            for token in chunk_words(part.content):
                                cumulative_text += token
                                yield TokenEvent(token=token, cumulative=cumulative_text)
                        elif isinstance(part, ModelToolCallPart):
                            logger.info(
                                "Tool call requested",
                                tool_name=part.tool_name,
                                tool_call_id=part.tool_call_id,
                            )
                            call_started[part.tool_call_id] = time.monotonic()
                            yield ToolCallEvent(
                                id=part.tool_call_id,
                                tool_name=part.tool_name,
                                arguments=part.args_as_dict(),
                                status="executing",
                            )

                elif Agent.is_model_request_node(node) and steps > 0:
                    events, media = self._tool_results(node.request.parts, call_started)
                    if on_step_finish is not None and media:
                        await on_step_finish(media)
                    for event in events:
                        yield event

                    if steps >= self.max_steps:
                        logger.warning("Step limit reached", steps=steps)
                        break

            usage = run_token_usage(run)

        logger.info("Agent run complete", steps=steps, response_len=len(cumulative_text))
        yield CompleteEvent(message_id=message_id, response=cumulative_text, usage=usage)

    def _tool_results(
        self, parts: list[Any], call_started: dict[str, float]
    ) -> tuple[list[ToolResultEvent], list[MediaFile]]:
        """Tool result events and produced media of one finished step."""
        events: list[ToolResultEvent] = []
        media: list[MediaFile] = []

        for part in parts:
            if isinstance(part, ToolReturnPart):
                result, is_error = part.content, False
                output = parse_tool_output(part.content)
                if isinstance(output, MediaOutput):
                    media.extend(output.files)
            elif isinstance(part, RetryPromptPart) and part.tool_name:
                result = part.content if isinstance(part.content, str) else part.model_response()
                is_error = True
            else:
                continue

            started = call_started.pop(part.tool_call_id, None)
            latency_ms = int((time.monotonic() - started) * 1000) if started else 0
            logger.info(
                "Tool result received",
                tool_name=part.tool_name,
                tool_call_id=part.tool_call_id,
                is_error=is_error,
                latency_ms=latency_ms,
            )
            events.append(
                ToolResultEvent(
                    tool_call_id=part.tool_call_id,
                    tool_name=part.tool_name,
                    result=result,
                    is_error=is_error,
                    latency_ms=latency_ms,
                )
            )

        return events, media
