"""Relational persistence: engine, tables and the project repository."""

from artisan_studio.db.engine import create_engine, create_session_factory, create_tables
from artisan_studio.db.repository import (
    ProjectAccessDenied,
    ProjectNotFoundError,
    ProjectRepository,
)
from artisan_studio.db.tables import (
    Base,
    MediaFileRow,
    MessageRow,
    ProjectRow,
    SessionRow,
    UserRow,
)

__all__ = [
    "Base",
    "MediaFileRow",
    "MessageRow",
    "ProjectAccessDenied",
    "ProjectNotFoundError",
    "ProjectRepository",
    "ProjectRow",
    "SessionRow",
    "UserRow",
    "create_engine",
    "create_session_factory",
    "create_tables",
]
