"""Minimal auth dependency.

Stub implementation that reads the user id from a bearer token or falls back
to a development user. Authentication flows live outside this service.
"""

import uuid
from typing import Annotated

from fastapi import Header, HTTPException, status

from backend.app.db.context import RequestContext

DEV_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


async def get_current_context(
    authorization: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Extract request context from authorization header.

    Accepts "Bearer <user_id>"; no header means the development user.

    Args:
        authorization: Authorization header (e.g., "Bearer <user_id>")

    Returns:
        RequestContext with user_id

    Raises:
        HTTPException: If authorization is invalid
    """
    if not authorization:
        return RequestContext(user_id=DEV_USER_ID)

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:]  # Strip "Bearer "

    try:
        return RequestContext(user_id=uuid.UUID(token))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token (expected user id)",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def require_owner(owner_id: uuid.UUID, ctx: RequestContext) -> None:
    """Raise 403 unless the context user owns the resource."""
    if ctx.user_id != owner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
