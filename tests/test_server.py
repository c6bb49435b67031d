"""Tests for the FastAPI server."""

from __future__ import annotations

import hashlib
from datetime import datetime
from types import SimpleNamespace

import pytest
from botocore.exceptions import NoCredentialsError
from conftest import PNG_BYTES, PUBLIC_BASE_URL, SESSION_TOKEN, FakeFalClient, FakeStorage
from fastapi.testclient import TestClient

from artisan_studio.db import ProjectAccessDenied, ProjectNotFoundError
from artisan_studio.generation import GenerationAdapter
from artisan_studio.models import MediaItem, ProjectDetail, ProjectSummary
from artisan_studio.projects import InvalidPrompt, RunInProgress
from artisan_studio.storage import MediaUploader
from artisan_studio.tools import ToolSurface

AUTH = {"Authorization": f"Bearer {SESSION_TOKEN}"}
NOW = datetime(2025, 1, 1, 12, 0, 0)


class FakeRepository:
    """Repository double: one user owning projects by id."""

    def __init__(self) -> None:
        self.projects: dict[str, SimpleNamespace] = {}

    async def get_user_by_session_token(self, token: str):
        if token == SESSION_TOKEN:
            return SimpleNamespace(id="user-1")
        return None

    async def get_project(self, project_id: str, user_id: str):
        project = self.projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def get_project_detail(self, project_id: str, user_id: str) -> ProjectDetail:
        project = await self.get_project(project_id, user_id)
        return ProjectDetail(
            id=project_id, title="Red Fox", status="ready", messages=[], resume=False
        )

    async def list_projects(self, user_id: str, search=None, status=None, sort="newest"):
        self.last_query = {"search": search, "status": status, "sort": sort}
        return [
            ProjectSummary(
                id="p1",
                title="Red Fox",
                status="ready",
                last_message_at=NOW,
                media_count=1,
                message_count=2,
                latest_image="http://media.test/m/images/user-1/a.png",
                created_at=NOW,
                updated_at=NOW,
            )
        ]

    async def list_media(self, user_id: str, media_type=None):
        self.last_media_type = media_type
        return [
            MediaItem(
                id="f1",
                project_id="p1",
                type="image",
                content_type="image/png",
                url="http://media.test/m/images/user-1/a.png",
                created_at=NOW,
            )
        ]


class FakeManager:
    """Run manager double: raises the configured error or returns a stream id."""

    def __init__(self) -> None:
        self.error: Exception | None = None
        self.started: list[tuple[str, str, int]] = []

    async def start(self, project_id, user_id, messages) -> str:
        if self.error is not None:
            raise self.error
        self.started.append((project_id, user_id, len(messages)))
        return "stream-1"

    async def cancel(self, project_id, user_id) -> bool:
        if project_id != "p1":
            raise ProjectNotFoundError(project_id)
        return True


class FakeBroker:
    def __init__(self) -> None:
        self.streams: set[str] = set()

    async def exists(self, stream_id: str) -> bool:
        return stream_id in self.streams


@pytest.fixture
def state() -> SimpleNamespace:
    return SimpleNamespace(
        repository=FakeRepository(),
        manager=FakeManager(),
        broker=FakeBroker(),
        storage=FakeStorage(),
    )


@pytest.fixture
def surface() -> ToolSurface:
    """Tool surface that is listed but never invoked."""
    fal = FakeFalClient()
    return ToolSurface(GenerationAdapter(fal, MediaUploader(FakeStorage())), fal)


@pytest.fixture
def test_app(state: SimpleNamespace, surface: ToolSurface) -> TestClient:
    """Create a test client with fake dependencies."""
    from artisan_studio.server import app

    # Override app state
    app.state.repository = state.repository
    app.state.manager = state.manager
    app.state.broker = state.broker
    app.state.storage = state.storage
    app.state.surface = surface

    return TestClient(app, raise_server_exceptions=False)


def generate_body(**overrides) -> dict:
    return {
        "id": "p1",
        "messages": [{"id": "u1", "role": "user", "parts": [{"type": "text", "text": "a fox"}]}],
        **overrides,
    }


class TestHealthEndpoint:
    """Tests for the health endpoint."""

    def test_health_check(self, test_app: TestClient) -> None:
        response = test_app.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "tool_count": 15}

    def test_list_tools(self, test_app: TestClient) -> None:
        response = test_app.get("/tools")
        assert response.status_code == 200
        tools = {t["name"]: t for t in response.json()}
        assert "merge-videos" in tools
        assert "videoUrls" in tools["merge-videos"]["input_schema"]["properties"]


class TestAuthentication:
    """Every /api route needs a valid session."""

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("post", "/api/generate"),
            ("get", "/api/generate/p1/stream"),
            ("post", "/api/generate/p1/cancel"),
            ("get", "/api/projects"),
            ("get", "/api/projects/p1"),
            ("get", "/api/media"),
            ("post", "/api/uploads"),
        ],
    )
    def test_missing_token(self, test_app: TestClient, method: str, path: str) -> None:
        response = getattr(test_app, method)(path)
        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized"

    def test_unknown_token(self, test_app: TestClient) -> None:
        response = test_app.get("/api/projects", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_wrong_scheme(self, test_app: TestClient) -> None:
        response = test_app.get("/api/projects", headers={"Authorization": SESSION_TOKEN})
        assert response.status_code == 401


class TestGenerateEndpoint:
    """Request validation of POST /api/generate."""

    def test_invalid_json(self, test_app: TestClient) -> None:
        response = test_app.post(
            "/api/generate",
            content=b"{not json",
            headers={**AUTH, "Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_missing_project_id(self, test_app: TestClient) -> None:
        response = test_app.post("/api/generate", json=generate_body(id=""), headers=AUTH)
        assert response.status_code == 400
        assert response.json()["detail"] == "Project ID is required"

    def test_messages_must_be_array(self, test_app: TestClient) -> None:
        response = test_app.post(
            "/api/generate", json=generate_body(messages="hello"), headers=AUTH
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Messages are required and must be an array"

    def test_malformed_message(self, test_app: TestClient) -> None:
        response = test_app.post(
            "/api/generate",
            json=generate_body(messages=[{"id": "u1", "role": "robot"}]),
            headers=AUTH,
        )
        assert response.status_code == 400

    def test_forbidden_project(self, test_app: TestClient, state: SimpleNamespace) -> None:
        state.manager.error = ProjectAccessDenied("p1", "user-1")
        response = test_app.post("/api/generate", json=generate_body(), headers=AUTH)
        assert response.status_code == 403

    def test_invalid_prompt(self, test_app: TestClient, state: SimpleNamespace) -> None:
        state.manager.error = InvalidPrompt()
        response = test_app.post("/api/generate", json=generate_body(), headers=AUTH)
        assert response.status_code == 400
        assert response.json()["detail"] == "A valid user message with text or files is required."

    def test_run_in_progress(self, test_app: TestClient, state: SimpleNamespace) -> None:
        state.manager.error = RunInProgress("p1")
        response = test_app.post("/api/generate", json=generate_body(), headers=AUTH)
        assert response.status_code == 409


class TestStreamEndpoint:
    """Tests for reattaching to a run stream."""

    def test_unknown_project(self, test_app: TestClient) -> None:
        response = test_app.get("/api/generate/missing/stream", headers=AUTH)
        assert response.status_code == 404

    def test_no_stream(self, test_app: TestClient, state: SimpleNamespace) -> None:
        state.repository.projects["p1"] = SimpleNamespace(id="p1", stream_id=None)
        response = test_app.get("/api/generate/p1/stream", headers=AUTH)
        assert response.status_code == 400
        assert response.json()["detail"] == "Stream not available"

    def test_expired_stream(self, test_app: TestClient, state: SimpleNamespace) -> None:
        state.repository.projects["p1"] = SimpleNamespace(id="p1", stream_id="stream-1")
        response = test_app.get("/api/generate/p1/stream", headers=AUTH)
        assert response.status_code == 204


class TestCancelEndpoint:
    def test_cancel(self, test_app: TestClient) -> None:
        response = test_app.post("/api/generate/p1/cancel", headers=AUTH)
        assert response.status_code == 200
        assert response.json() == {"cancelled": True}

    def test_cancel_unknown_project(self, test_app: TestClient) -> None:
        response = test_app.post("/api/generate/missing/cancel", headers=AUTH)
        assert response.status_code == 404


class TestProjectEndpoints:
    """Tests for project and media listings."""

    def test_list_projects(self, test_app: TestClient, state: SimpleNamespace) -> None:
        response = test_app.get(
            "/api/projects", params={"search": "fox", "sort": "title"}, headers=AUTH
        )
        assert response.status_code == 200
        assert response.json()[0]["media_count"] == 1
        assert state.repository.last_query == {"search": "fox", "status": None, "sort": "title"}

    def test_invalid_sort(self, test_app: TestClient) -> None:
        response = test_app.get("/api/projects", params={"sort": "random"}, headers=AUTH)
        assert response.status_code == 422

    def test_get_project(self, test_app: TestClient, state: SimpleNamespace) -> None:
        state.repository.projects["p1"] = SimpleNamespace(id="p1", stream_id=None)
        response = test_app.get("/api/projects/p1", headers=AUTH)
        assert response.status_code == 200
        assert response.json()["title"] == "Red Fox"

    def test_get_missing_project(self, test_app: TestClient) -> None:
        response = test_app.get("/api/projects/missing", headers=AUTH)
        assert response.status_code == 404

    def test_list_media(self, test_app: TestClient, state: SimpleNamespace) -> None:
        response = test_app.get("/api/media", params={"type": "image"}, headers=AUTH)
        assert response.status_code == 200
        assert response.json()[0]["content_type"] == "image/png"
        assert state.repository.last_media_type == "image"


class TestUploadEndpoint:
    """Tests for presigning attachment uploads."""

    def test_presigns_each_file(self, test_app: TestClient, state: SimpleNamespace) -> None:
        body = {
            "files": [
                {"name": "Fox.PNG", "type": "image/png", "size": 1024},
                {"name": "photo", "type": "image/jpeg", "size": 2048},
            ]
        }
        response = test_app.post("/api/uploads", json=body, headers=AUTH)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        first, second = data["uploads"]
        assert first["type"] == "new"
        assert first["filename"] == "Fox.PNG"
        assert first["imageUrl"].startswith(f"{PUBLIC_BASE_URL}/m/uploads/user-1/")
        assert first["imageUrl"].endswith(".png")
        assert second["imageUrl"].endswith(".jpg")
        assert "X-Amz-Signature" in first["uploadUrl"]
        assert [content_type for _, content_type in state.storage.presigned] == [
            "image/png",
            "image/jpeg",
        ]

    def test_no_files(self, test_app: TestClient) -> None:
        response = test_app.post("/api/uploads", json={"files": []}, headers=AUTH)
        assert response.status_code == 400
        assert response.json()["detail"] == "Please upload a file."

    def test_storage_failure(self, test_app: TestClient, state: SimpleNamespace) -> None:
        state.storage.presign_error = NoCredentialsError()
        body = {"files": [{"name": "fox.png", "type": "image/png", "size": 1}]}
        response = test_app.post("/api/uploads", json=body, headers=AUTH)
        assert response.status_code == 500
        assert response.json()["detail"] == "Unable to upload files. Please try again."


class TestMediaRoute:
    """Tests for serving stored media."""

    def test_serves_file(self, test_app: TestClient, state: SimpleNamespace) -> None:
        key = "images/user-1/a.png"
        state.storage.objects[key] = (PNG_BYTES, "image/png")

        response = test_app.get(f"/m/{key}")

        assert response.status_code == 200
        assert response.content == PNG_BYTES
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-disposition"] == "inline"
        assert response.headers["cache-control"] == "public, max-age=31536000, immutable"
        digest = hashlib.sha256(f"{key}-{len(PNG_BYTES)}".encode()).hexdigest()[:32]
        assert response.headers["etag"] == f'"{digest}"'

    def test_missing_file(self, test_app: TestClient) -> None:
        response = test_app.get("/m/images/user-1/missing.png")
        assert response.status_code == 404
        assert response.json()["detail"] == "File not found"
