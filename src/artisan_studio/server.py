"""FastAPI server with REST + SSE endpoints."""

from __future__ import annotations

import asyncio
import hashlib
from contextlib import asynccontextmanager
from typing import Annotated, Literal

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sse_starlette.sse import EventSourceResponse

from artisan_studio.auth import require_user
from artisan_studio.db import (
    ProjectAccessDenied,
    ProjectNotFoundError,
    ProjectRepository,
    UserRow,
    create_engine,
    create_session_factory,
    create_tables,
)
from artisan_studio.fal_client import FalClient
from artisan_studio.generation import GenerationAdapter
from artisan_studio.logging import clear_context, configure_logging, get_logger
from artisan_studio.models import (
    CancelResponse,
    GenerateRequest,
    HealthResponse,
    MediaItem,
    ProjectDetail,
    ProjectSummary,
    ToolInfo,
    UploadRequest,
    UploadResponse,
    UploadTicket,
)
from artisan_studio.orchestrator import AgentOrchestrator
from artisan_studio.projects import InvalidPrompt, ProjectManager, RunInProgress
from artisan_studio.settings import settings
from artisan_studio.storage import (
    MediaUploader,
    ObjectStorage,
    content_type_for_path,
    upload_key,
)
from artisan_studio.stream import StreamBroker
from artisan_studio.tools import ToolSurface

logger = get_logger(__name__)

CurrentUser = Annotated[UserRow, Depends(require_user)]


def _secret(value) -> str | None:
    return value.get_secret_value() if value else None


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    configure_logging(json_output=settings.log_json, log_level=settings.log_level)

    logger.info("Starting Artisan Studio...")

    # Persistence
    engine = create_engine(settings.database_url)
    if settings.create_tables:
        await create_tables(engine)
    repository = ProjectRepository(create_session_factory(engine))

    # Resumable streams
    redis = Redis.from_url(settings.redis_url, decode_responses=True)
    broker = StreamBroker(
        redis,
        ttl_seconds=settings.stream_ttl_seconds,
        block_ms=settings.stream_block_ms,
    )

    # Generation pipeline
    storage = ObjectStorage(
        bucket_name=settings.s3_bucket,
        region=settings.s3_region,
        public_base_url=settings.public_base_url,
        access_key_id=_secret(settings.s3_access_key),
        secret_access_key=_secret(settings.s3_secret_key),
        endpoint_url=settings.s3_endpoint,
    )
    fal = FalClient(
        api_key=_secret(settings.fal_api_key),
        queue_url=settings.fal_queue_url,
        poll_interval=settings.fal_poll_interval,
        timeout=settings.fal_timeout,
    )
    uploader = MediaUploader(storage)
    surface = ToolSurface(GenerationAdapter(fal, uploader), fal)

    orchestrator = AgentOrchestrator(
        surface,
        model=settings.chat_model_string,
        title_model=settings.title_model_string,
        max_steps=settings.max_steps,
        tool_retries=settings.tool_retries,
    )
    manager = ProjectManager(repository, orchestrator, broker)

    # Store in app state
    app.state.repository = repository
    app.state.broker = broker
    app.state.storage = storage
    app.state.surface = surface
    app.state.manager = manager

    if settings.missing_credentials:
        logger.warning("Missing credentials", names=settings.missing_credentials)

    logger.info(
        "Artisan Studio started",
        host=settings.host,
        port=settings.port,
        model=settings.chat_model,
        tool_count=len(surface.names),
    )

    yield

    # Shutdown
    logger.info("Shutting down Artisan Studio...")
    await manager.shutdown()
    await uploader.close()
    await fal.close()
    await redis.aclose()
    await engine.dispose()
    logger.info("Artisan Studio shutdown complete")


# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title="Artisan Studio",
    description="Conversational media generation - an LLM agent driving fal.ai models",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def reset_log_context(request: Request, call_next):
    """Start every request with an empty logging context."""
    clear_context()
    return await call_next(request)


def _event_stream(broker: StreamBroker, stream_id: str, last_event_id: str = "0"):
    return EventSourceResponse(
        broker.subscribe(stream_id, last_event_id),
        ping=settings.heartbeat_interval,
        headers={
            "X-Accel-Buffering": "no",  # Disable Nginx buffering
            "Cache-Control": "no-cache",
        },
    )


# ============================================================================
# Health Check
# ============================================================================


@app.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Health check endpoint."""
    surface: ToolSurface = request.app.state.surface
    return HealthResponse(status="ok", tool_count=len(surface.names))


@app.get("/tools", response_model=list[ToolInfo])
async def list_tools(request: Request) -> list[ToolInfo]:
    """List the agent's tools with their input schemas."""
    surface: ToolSurface = request.app.state.surface
    return [
        ToolInfo(name=d.name, description=d.description, input_schema=d.input_schema())
        for d in surface.definitions()
    ]


# ============================================================================
# Generation
# ============================================================================


@app.post("/api/generate")
async def generate(request: Request, user: CurrentUser) -> EventSourceResponse:
    """Start a generation run and stream its events.

    Streams:
    - start: Run started, carries the assistant message id
    - project_metadata: New project title (not part of the transcript)
    - token: Streaming text tokens
    - tool_call: Tool execution status
    - tool_result: Tool execution result
    - complete: Response complete and saved
    - error: Run failed or was cancelled
    """
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from None

    if not isinstance(body, dict) or not body.get("id"):
        raise HTTPException(status_code=400, detail="Project ID is required")
    if not isinstance(body.get("messages"), list):
        raise HTTPException(
            status_code=400, detail="Messages are required and must be an array"
        )
    try:
        payload = GenerateRequest.model_validate(body)
    except ValidationError as e:
        logger.info("Rejected malformed messages", errors=e.error_count())
        raise HTTPException(status_code=400, detail="Messages are malformed") from None

    manager: ProjectManager = request.app.state.manager
    try:
        stream_id = await manager.start(payload.id, user.id, payload.messages)
    except ProjectAccessDenied:
        raise HTTPException(status_code=403, detail="Project access denied") from None
    except InvalidPrompt as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except RunInProgress as e:
        raise HTTPException(status_code=409, detail=str(e)) from None

    return _event_stream(request.app.state.broker, stream_id)


@app.get("/api/generate/{project_id}/stream")
async def resume_stream(request: Request, project_id: str, user: CurrentUser):
    """Reattach to a project's run stream.

    Honours Last-Event-ID, so a reconnecting client continues exactly after
    the last event it received.
    """
    repository: ProjectRepository = request.app.state.repository
    broker: StreamBroker = request.app.state.broker

    try:
        project = await repository.get_project(project_id, user.id)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found") from None

    if not project.stream_id:
        raise HTTPException(status_code=400, detail="Stream not available")

    try:
        exists = await broker.exists(project.stream_id)
    except RedisError:
        logger.exception("Stream broker unavailable", stream_id=project.stream_id)
        raise HTTPException(
            status_code=503, detail="Stream temporarily unavailable, please retry"
        ) from None

    if not exists:
        # Finished long enough ago to have expired
        return Response(status_code=204)

    last_event_id = request.headers.get("Last-Event-ID") or "0"
    return _event_stream(broker, project.stream_id, last_event_id)


@app.post("/api/generate/{project_id}/cancel", response_model=CancelResponse)
async def cancel_generation(request: Request, project_id: str, user: CurrentUser) -> CancelResponse:
    """Cancel an ongoing generation."""
    manager: ProjectManager = request.app.state.manager
    try:
        cancelled = await manager.cancel(project_id, user.id)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found") from None
    return CancelResponse(cancelled=cancelled)


# ============================================================================
# Projects and Media
# ============================================================================


@app.get("/api/projects", response_model=list[ProjectSummary])
async def list_projects(
    request: Request,
    user: CurrentUser,
    search: Annotated[str | None, Query(description="Title substring")] = None,
    status: Annotated[str | None, Query(description="Status filter or 'all'")] = None,
    sort: Annotated[Literal["newest", "oldest", "title", "status"], Query()] = "newest",
) -> list[ProjectSummary]:
    """List the caller's projects."""
    repository: ProjectRepository = request.app.state.repository
    return await repository.list_projects(user.id, search=search, status=status, sort=sort)


@app.get("/api/projects/{project_id}", response_model=ProjectDetail)
async def get_project(request: Request, project_id: str, user: CurrentUser) -> ProjectDetail:
    """Get a project with its transcript."""
    repository: ProjectRepository = request.app.state.repository
    try:
        return await repository.get_project_detail(project_id, user.id)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found") from None


@app.get("/api/media", response_model=list[MediaItem])
async def list_media(
    request: Request,
    user: CurrentUser,
    type: Annotated[Literal["image", "video", "audio", "all"], Query()] = "all",
) -> list[MediaItem]:
    """List the caller's generated media, newest first."""
    repository: ProjectRepository = request.app.state.repository
    return await repository.list_media(user.id, type)


@app.post("/api/uploads", response_model=UploadResponse)
async def create_upload_urls(
    request: Request, payload: UploadRequest, user: CurrentUser
) -> UploadResponse:
    """Presign direct uploads for files the user attaches to a message.

    The client PUTs each file to its uploadUrl, then sends imageUrl as a
    file part of its next message.
    """
    if not payload.files:
        raise HTTPException(status_code=400, detail="Please upload a file.")

    storage: ObjectStorage = request.app.state.storage
    keys = [upload_key(user.id, file.name) for file in payload.files]
    try:
        upload_urls = await asyncio.gather(
            *(storage.presign_put(key, file.type) for key, file in zip(keys, payload.files))
        )
    except (BotoCoreError, ClientError):
        logger.exception("Failed to create upload URLs", user_id=user.id)
        raise HTTPException(
            status_code=500, detail="Unable to upload files. Please try again."
        ) from None

    return UploadResponse(
        uploads=[
            UploadTicket(upload_url=url, image_url=storage.public_url(key), filename=file.name)
            for key, url, file in zip(keys, upload_urls, payload.files)
        ]
    )


@app.get("/m/{path:path}")
async def serve_media(request: Request, path: str) -> Response:
    """Serve a stored media file."""
    storage: ObjectStorage = request.app.state.storage

    stored = await storage.get(path)
    if stored is None:
        raise HTTPException(status_code=404, detail="File not found")

    etag = hashlib.sha256(f"{path}-{stored.size}".encode()).hexdigest()[:32]
    return Response(
        content=stored.body,
        media_type=content_type_for_path(path),
        headers={
            "Content-Disposition": "inline",
            "Cache-Control": "public, max-age=31536000, immutable",
            "ETag": f'"{etag}"',
        },
    )
