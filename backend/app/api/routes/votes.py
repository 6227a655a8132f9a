"""Message vote endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field

from backend.app.api.auth import get_current_context, require_owner
from backend.app.api.dependencies import get_chat_store
from backend.app.db.context import RequestContext
from backend.app.db.repositories import ChatStore
from backend.app.models.common import VoteType
from backend.app.models.documents import CamelModel
from backend.app.models.messages import Vote

router = APIRouter(prefix="/vote", tags=["votes"])


class VoteRequest(CamelModel):
    """Request body for PATCH /vote."""

    chat_id: uuid.UUID
    message_id: uuid.UUID
    type: VoteType = Field(..., description="up or down")


async def _require_chat_owner(chats: ChatStore, chat_id: uuid.UUID, ctx: RequestContext) -> None:
    chat = await chats.get_chat_by_id(chat_id)
    if chat is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    require_owner(chat.user_id, ctx)


@router.get("")
async def get_votes(
    chat_id: Annotated[uuid.UUID, Query(alias="chatId")],
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    chats: Annotated[ChatStore, Depends(get_chat_store)],
) -> list[Vote]:
    await _require_chat_owner(chats, chat_id, ctx)
    return await chats.get_votes_by_chat_id(chat_id)


@router.patch("")
async def vote_message(
    body: VoteRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    chats: Annotated[ChatStore, Depends(get_chat_store)],
) -> Vote:
    """Up- or down-vote a message; a second vote replaces the first."""
    await _require_chat_owner(chats, body.chat_id, ctx)
    return await chats.vote_message(body.chat_id, body.message_id, body.type)
