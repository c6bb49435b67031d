"""Project persistence operations used by the run loop and the HTTP API."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from artisan_studio.db.tables import (
    MediaFileRow,
    MessageRow,
    ProjectRow,
    SessionRow,
    UserRow,
    utcnow,
)
from artisan_studio.logging import get_logger
from artisan_studio.models.api import MediaItem, ProjectDetail, ProjectSummary, StoredMessage
from artisan_studio.models.conversation import DEFAULT_MESSAGE_METADATA

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from artisan_studio.models.conversation import Message
    from artisan_studio.models.media import MediaFile

logger = get_logger(__name__)

SORT_ORDERS = ("newest", "oldest", "title", "status")


def _dialect_insert(session: AsyncSession):
    """INSERT construct with ON CONFLICT support for the bound dialect."""
    return pg_insert if session.bind.dialect.name == "postgresql" else sqlite_insert


class RepositoryError(Exception):
    """Base exception for persistence errors."""


class ProjectNotFoundError(RepositoryError):
    """Project does not exist or belongs to someone else."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class ProjectAccessDenied(RepositoryError):
    """Project exists but belongs to another user."""

    def __init__(self, project_id: str, user_id: str) -> None:
        self.project_id = project_id
        self.user_id = user_id
        super().__init__(f"Project access denied: {project_id}")


class ProjectRepository:
    """Projects, their messages and their media.

    Every method opens its own session; multi-row writes run in one
    transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user_by_session_token(self, token: str) -> UserRow | None:
        """Resolve a bearer token to its user, if the session is still valid."""
        stmt = (
            select(UserRow)
            .join(SessionRow, SessionRow.user_id == UserRow.id)
            .where(SessionRow.token == token, SessionRow.expires_at > utcnow())
        )
        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def get_project(self, project_id: str, user_id: str) -> ProjectRow:
        """Get a project owned by a user.

        Raises:
            ProjectNotFoundError: If it doesn't exist or isn't the user's.
        """
        async with self.session_factory() as session:
            project = await session.get(ProjectRow, project_id)
        if project is None or project.user_id != user_id:
            raise ProjectNotFoundError(project_id)
        return project

    async def get_or_create_project(self, project_id: str, user_id: str) -> ProjectRow:
        """Get a project, creating it for the user on first contact.

        Creation is an insert that ignores an existing id, so concurrent first
        requests for one project all end up reading the same row.

        Raises:
            ProjectAccessDenied: If the project belongs to another user.
        """
        async with self.session_factory() as session, session.begin():
            insert = _dialect_insert(session)
            stmt = (
                insert(ProjectRow.__table__)
                .values(id=project_id, user_id=user_id)
                .on_conflict_do_nothing(index_elements=["id"])
            )
            created = (await session.execute(stmt)).rowcount == 1
            project = await session.get(ProjectRow, project_id)

        if project.user_id != user_id:
            raise ProjectAccessDenied(project_id, user_id)
        if created:
            logger.info("Created project", project_id=project_id, user_id=user_id)
        return project

    async def start_run(self, project_id: str, stream_id: str) -> None:
        """Mark a project as streaming under a fresh stream id."""
        await self._update_project(
            project_id, status="streaming", stream_id=stream_id, updated_at=utcnow()
        )

    async def set_title(self, project_id: str, title: str) -> None:
        await self._update_project(project_id, title=title[:255], updated_at=utcnow())

    async def complete_run(self, project_id: str, message: Message) -> None:
        """Persist the assistant message and mark the project ready, atomically."""
        now = utcnow()
        async with self.session_factory() as session, session.begin():
            await self._upsert(session, project_id, [message], now)
            await session.execute(
                update(ProjectRow)
                .where(ProjectRow.id == project_id)
                .values(status="ready", last_message_at=now, updated_at=now)
            )

    async def fail_run(self, project_id: str) -> None:
        """Mark a project as errored and drop its stream."""
        await self._update_project(
            project_id, status="error", stream_id=None, updated_at=utcnow()
        )

    async def cancel_run(self, project_id: str) -> None:
        """Return a cancelled project to ready and drop its stream."""
        await self._update_project(
            project_id, status="ready", stream_id=None, updated_at=utcnow()
        )

    async def _update_project(self, project_id: str, **values: Any) -> None:
        async with self.session_factory() as session, session.begin():
            await session.execute(
                update(ProjectRow).where(ProjectRow.id == project_id).values(**values)
            )

    # ------------------------------------------------------------------
    # Messages and media
    # ------------------------------------------------------------------

    async def upsert_messages(self, project_id: str, messages: list[Message]) -> None:
        """Insert or update messages by id, in one transaction.

        On conflict only parts, metadata and updated_at change; created_at is
        kept, so replaying a transcript never reorders it.
        """
        if not messages:
            return
        async with self.session_factory() as session, session.begin():
            await self._upsert(session, project_id, messages, utcnow())

    async def _upsert(
        self,
        session: AsyncSession,
        project_id: str,
        messages: list[Message],
        now,
    ) -> None:
        table = MessageRow.__table__
        insert = _dialect_insert(session)

        # Spread created_at by a microsecond so batch order is stable
        values = [
            {
                "id": message.id,
                "project_id": project_id,
                "role": message.role,
                "parts": [part.model_dump(mode="json") for part in message.parts],
                "metadata": message.metadata or dict(DEFAULT_MESSAGE_METADATA),
                "created_at": now + timedelta(microseconds=i),
                "updated_at": now,
            }
            for i, message in enumerate(messages)
        ]
        stmt = insert(table).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={
                "parts": stmt.excluded["parts"],
                "metadata": stmt.excluded["metadata"],
                "updated_at": stmt.excluded["updated_at"],
            },
            # Ids are client-chosen; never touch a message of another project
            where=table.c.project_id == stmt.excluded["project_id"],
        )
        await session.execute(stmt)

    async def insert_media_files(
        self, user_id: str, project_id: str, files: list[MediaFile]
    ) -> int:
        """Record generated files, one row per file. Returns the row count."""
        if not files:
            return 0
        async with self.session_factory() as session, session.begin():
            session.add_all(
                MediaFileRow(
                    user_id=user_id,
                    project_id=project_id,
                    type=f.media_kind,
                    content_type=f.content_type,
                    url=f.url,
                )
                for f in files
            )
        logger.info("Recorded media files", project_id=project_id, count=len(files))
        return len(files)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def get_project_detail(self, project_id: str, user_id: str) -> ProjectDetail:
        """A project with its ordered transcript.

        Raises:
            ProjectNotFoundError: If it doesn't exist or isn't the user's.
        """
        project = await self.get_project(project_id, user_id)
        stmt = (
            select(MessageRow)
            .where(MessageRow.project_id == project_id)
            .order_by(MessageRow.created_at)
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()

        return ProjectDetail(
            id=project.id,
            title=project.title,
            status=project.status,
            messages=[
                StoredMessage(
                    id=row.id,
                    role=row.role,
                    parts=row.parts,
                    metadata=row.metadata_,
                    created_at=row.created_at,
                    updated_at=row.updated_at,
                )
                for row in rows
            ],
            resume=project.stream_id is not None,
        )

    async def list_projects(
        self,
        user_id: str,
        search: str | None = None,
        status: str | None = None,
        sort: str = "newest",
    ) -> list[ProjectSummary]:
        """The user's projects with media/message counts and latest image."""
        media_count = (
            select(func.count(MediaFileRow.id))
            .where(MediaFileRow.project_id == ProjectRow.id)
            .correlate(ProjectRow)
            .scalar_subquery()
        )
        message_count = (
            select(func.count(MessageRow.id))
            .where(MessageRow.project_id == ProjectRow.id)
            .correlate(ProjectRow)
            .scalar_subquery()
        )
        latest_image = (
            select(MediaFileRow.url)
            .where(MediaFileRow.project_id == ProjectRow.id, MediaFileRow.type == "image")
            .order_by(MediaFileRow.created_at.desc())
            .limit(1)
            .correlate(ProjectRow)
            .scalar_subquery()
        )

        stmt = select(ProjectRow, media_count, message_count, latest_image).where(
            ProjectRow.user_id == user_id
        )
        if search:
            stmt = stmt.where(ProjectRow.title.ilike(f"%{search}%"))
        if status and status != "all":
            stmt = stmt.where(ProjectRow.status == status)

        order = {
            "oldest": ProjectRow.last_message_at.asc(),
            "title": ProjectRow.title.asc(),
            "status": ProjectRow.status.asc(),
        }.get(sort, ProjectRow.last_message_at.desc())
        stmt = stmt.order_by(order)

        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()

        return [
            ProjectSummary(
                id=project.id,
                title=project.title or "Untitled Project",
                status=project.status,
                last_message_at=project.last_message_at,
                media_count=media or 0,
                message_count=msgs or 0,
                latest_image=image,
                created_at=project.created_at,
                updated_at=project.updated_at,
            )
            for project, media, msgs, image in rows
        ]

    async def list_media(self, user_id: str, media_type: str | None = None) -> list[MediaItem]:
        """The user's generated media, newest first."""
        stmt = select(MediaFileRow).where(MediaFileRow.user_id == user_id)
        if media_type and media_type != "all":
            stmt = stmt.where(MediaFileRow.type == media_type)
        stmt = stmt.order_by(MediaFileRow.created_at.desc())

        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()

        return [
            MediaItem(
                id=row.id,
                project_id=row.project_id,
                type=row.type,
                content_type=row.content_type,
                url=row.url,
                created_at=row.created_at,
            )
            for row in rows
        ]
