"""Shared test fixtures for artisan-studio."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import pytest
from fakeredis import FakeAsyncRedis

from artisan_studio.errors import GenerationCancelled
from artisan_studio.storage import StoredObject

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from artisan_studio.db import ProjectRepository, UserRow
    from artisan_studio.generation import GenerationAdapter
    from artisan_studio.storage import MediaUploader
    from artisan_studio.stream import StreamBroker
    from artisan_studio.tools import ToolSurface

PUBLIC_BASE_URL = "http://media.test"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
SESSION_TOKEN = "session-token-1"


class FakeFalClient:
    """Stands in for FalClient: canned responses per model, calls recorded."""

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def subscribe(
        self,
        model_id: str,
        input: dict[str, Any],
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled(model_id)
        self.calls.append((model_id, input))
        response = self.responses[model_id]
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        pass


class FakeStorage:
    """In-memory stand-in for ObjectStorage."""

    def __init__(self, public_base_url: str = PUBLIC_BASE_URL) -> None:
        self.public_base_url = public_base_url
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.presigned: list[tuple[str, str]] = []
        self.presign_error: Exception | None = None

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/m/{key}"

    async def put(self, key: str, body: bytes, content_type: str) -> None:
        self.objects[key] = (body, content_type)

    async def presign_put(self, key: str, content_type: str, expires_in: int = 3600) -> str:
        if self.presign_error is not None:
            raise self.presign_error
        self.presigned.append((key, content_type))
        return f"https://bucket.test/{key}?X-Amz-Signature=test"

    async def get(self, key: str) -> StoredObject | None:
        if key not in self.objects:
            return None
        body, content_type = self.objects[key]
        return StoredObject(body=body, content_type=content_type, size=len(body))


def origin_transport(missing: set[str] | None = None) -> httpx.MockTransport:
    """Origin server for generated files: every URL serves PNG_BYTES."""
    missing = missing or set()

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) in missing:
            return httpx.Response(404)
        return httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/png"})

    return httpx.MockTransport(handler)


# ============================================================================
# Persistence
# ============================================================================


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """SQLite database file with all tables created."""
    from artisan_studio.db import create_engine, create_tables

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'artisan.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def repository(engine: AsyncEngine) -> ProjectRepository:
    from artisan_studio.db import ProjectRepository, create_session_factory

    return ProjectRepository(create_session_factory(engine))


async def add_user(
    repository: ProjectRepository,
    user_id: str,
    token: str,
    expires_in: timedelta = timedelta(days=1),
) -> UserRow:
    """Insert a user with one login session."""
    from artisan_studio.db import SessionRow, UserRow
    from artisan_studio.db.tables import utcnow

    user = UserRow(id=user_id, name=user_id.title(), email=f"{user_id}@example.com")
    async with repository.session_factory() as session, session.begin():
        session.add(user)
        await session.flush()
        session.add(SessionRow(user_id=user_id, token=token, expires_at=utcnow() + expires_in))
    return user


@pytest.fixture
async def user(repository: ProjectRepository) -> UserRow:
    """A signed-in user."""
    return await add_user(repository, "user-1", SESSION_TOKEN)


@pytest.fixture
async def other_user(repository: ProjectRepository) -> UserRow:
    return await add_user(repository, "user-2", "session-token-2")


# ============================================================================
# Streams
# ============================================================================


@pytest.fixture
async def redis() -> AsyncIterator[FakeAsyncRedis]:
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def broker(redis: FakeAsyncRedis) -> StreamBroker:
    """Broker polling with non-blocking reads."""
    from artisan_studio.stream import StreamBroker

    return StreamBroker(redis, ttl_seconds=60, block_ms=None, poll_interval=0.01)


# ============================================================================
# Generation pipeline
# ============================================================================


@pytest.fixture
def fal() -> FakeFalClient:
    return FakeFalClient(
        {
            "fal-ai/imagen4/preview": {
                "images": [{"url": "https://x/y.png", "content_type": "image/png"}]
            },
        }
    )


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
async def uploader(storage: FakeStorage) -> AsyncIterator[MediaUploader]:
    from artisan_studio.storage import MediaUploader

    client = httpx.AsyncClient(transport=origin_transport())
    yield MediaUploader(storage, http_client=client)
    await client.aclose()


@pytest.fixture
def adapter(fal: FakeFalClient, uploader: MediaUploader) -> GenerationAdapter:
    from artisan_studio.generation import GenerationAdapter

    return GenerationAdapter(fal, uploader)


@pytest.fixture
def surface(adapter: GenerationAdapter, fal: FakeFalClient) -> ToolSurface:
    from artisan_studio.tools import ToolSurface

    return ToolSurface(adapter, fal)
