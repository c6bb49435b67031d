"""Bearer-token authentication against the sessions table.

Sessions are created by the external sign-in flow; this service only checks
them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import HTTPException, Request

from artisan_studio.logging import bind_context

if TYPE_CHECKING:
    from artisan_studio.db import ProjectRepository, UserRow


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_user(request: Request) -> UserRow:
    """FastAPI dependency resolving the caller from its session token.

    Raises:
        HTTPException: 401 if the token is missing, unknown or expired.
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    repository: ProjectRepository = request.app.state.repository
    user = await repository.get_user_by_session_token(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    bind_context(user_id=user.id)
    return user
