"""Unit tests for the auth stub."""

import uuid

import pytest
from fastapi import HTTPException

from backend.app.api.auth import DEV_USER_ID, get_current_context, require_owner
from backend.app.db.context import RequestContext


@pytest.mark.asyncio
async def test_get_current_context_no_header_uses_dev_user() -> None:
    """Test that missing auth header falls back to the development user."""
    ctx = await get_current_context(authorization=None)

    assert ctx.user_id == DEV_USER_ID
    assert ctx.is_authenticated


@pytest.mark.asyncio
async def test_get_current_context_valid_token() -> None:
    """Test a bearer token holding a user id."""
    user_id = uuid.uuid4()

    ctx = await get_current_context(authorization=f"Bearer {user_id}")

    assert ctx.user_id == user_id


@pytest.mark.asyncio
async def test_get_current_context_invalid_bearer_format() -> None:
    """Test invalid bearer format raises 401."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_context(authorization="NotBearer token")

    assert exc_info.value.status_code == 401
    assert "Invalid authorization header format" in exc_info.value.detail


@pytest.mark.asyncio
async def test_get_current_context_token_not_a_user_id() -> None:
    """Test a token that is not a UUID raises 401."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_context(authorization="Bearer not-a-uuid")

    assert exc_info.value.status_code == 401


def test_require_owner_rejects_other_user() -> None:
    owner = uuid.uuid4()

    require_owner(owner, RequestContext(user_id=owner))
    with pytest.raises(HTTPException) as exc_info:
        require_owner(owner, RequestContext(user_id=uuid.uuid4()))

    assert exc_info.value.status_code == 403


def test_anonymous_context_is_not_authenticated() -> None:
    assert not RequestContext().is_authenticated
