"""Chat endpoints - streamed turns, history, messages and visibility."""

import asyncio
import logging
import uuid
from collections.abc import AsyncGenerator, Coroutine
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from backend.app.api.auth import get_current_context, require_owner
from backend.app.api.dependencies import get_chat_store, get_chat_turn_deps, get_metrics
from backend.app.chat.messages import get_most_recent_user_message, to_ui_messages
from backend.app.chat.turn import ChatTurnDeps, run_chat_turn
from backend.app.db.context import RequestContext
from backend.app.db.repositories import ChatStore
from backend.app.llm.client import CHAT_MODELS, DEFAULT_CHAT_MODEL
from backend.app.models.common import Visibility
from backend.app.models.messages import Chat, ChatRequestMessage, UIMessage
from backend.app.streaming.channel import QueueDataStream
from backend.app.utils.metrics import PrometheusDocumentMetrics

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    id: uuid.UUID
    messages: list[ChatRequestMessage] = Field(..., min_length=1)
    selected_chat_model: str = Field(DEFAULT_CHAT_MODEL, alias="selectedChatModel")


class VisibilityRequest(BaseModel):
    visibility: Visibility


class DeletedMessagesResponse(BaseModel):
    deleted: int


async def _get_owned_chat(chats: ChatStore, chat_id: uuid.UUID, ctx: RequestContext) -> Chat:
    chat = await chats.get_chat_by_id(chat_id)
    if chat is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    require_owner(chat.user_id, ctx)
    return chat


async def _run_turn_into(
    stream: QueueDataStream, request: ChatRequest, ctx: RequestContext, deps: ChatTurnDeps
) -> None:
    try:
        await run_chat_turn(
            chat_id=request.id,
            messages=request.messages,
            model_id=request.selected_chat_model,
            ctx=ctx,
            deps=deps,
            stream=stream,
        )
    except Exception:
        logger.exception("Chat turn failed for chat %s", request.id)
        await stream.send("error", {"message": "Oops, an error occurred!"})
    finally:
        stream.close()


async def stream_turn_sse(
    stream: QueueDataStream, turn: Coroutine[Any, Any, None]
) -> AsyncGenerator[str, None]:
    """Run the turn in the background and yield its frames as SSE chunks.

    The turn is cancelled when the consumer stops early, e.g. on client disconnect.
    """
    task = asyncio.create_task(turn)
    try:
        async for chunk in stream.sse():
            yield chunk
        await task
    finally:
        if not task.done():
            logger.info("Client went away; cancelling chat turn")
            task.cancel()


@router.post("/chat")
async def post_chat(
    request: ChatRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    chats: Annotated[ChatStore, Depends(get_chat_store)],
    deps: Annotated[ChatTurnDeps, Depends(get_chat_turn_deps)],
    metrics: Annotated[PrometheusDocumentMetrics, Depends(get_metrics)],
) -> StreamingResponse:
    """Run one chat turn and stream its frames via SSE.

    Raises:
        HTTPException: 400 without a user message or with an unknown model,
            403 when the chat belongs to another user
    """
    if get_most_recent_user_message(request.messages) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No user message found")

    if request.selected_chat_model not in {model.id for model in CHAT_MODELS}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown chat model")

    chat = await chats.get_chat_by_id(request.id)
    if chat is not None:
        require_owner(chat.user_id, ctx)

    stream = QueueDataStream(metrics=metrics)

    return StreamingResponse(
        stream_turn_sse(stream, _run_turn_into(stream, request, ctx, deps)),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.delete("/chat/{chat_id}")
async def delete_chat(
    chat_id: uuid.UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    chats: Annotated[ChatStore, Depends(get_chat_store)],
) -> Chat:
    await _get_owned_chat(chats, chat_id, ctx)
    deleted = await chats.delete_chat_by_id(chat_id)
    if deleted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    return deleted


@router.get("/chat/{chat_id}/messages")
async def get_chat_messages(
    chat_id: uuid.UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    chats: Annotated[ChatStore, Depends(get_chat_store)],
) -> list[UIMessage]:
    """Messages of a chat in display form; private chats only for their owner."""
    chat = await chats.get_chat_by_id(chat_id)
    if chat is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    if chat.visibility is Visibility.private:
        require_owner(chat.user_id, ctx)
    return to_ui_messages(await chats.get_messages_by_chat_id(chat_id))


@router.delete("/chat/{chat_id}/messages")
async def delete_trailing_messages(
    chat_id: uuid.UUID,
    after: Annotated[datetime, Query(description="Delete messages created at or after this time")],
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    chats: Annotated[ChatStore, Depends(get_chat_store)],
) -> DeletedMessagesResponse:
    await _get_owned_chat(chats, chat_id, ctx)
    return DeletedMessagesResponse(deleted=await chats.delete_messages_after(chat_id, after))


@router.patch("/chat/{chat_id}/visibility")
async def update_visibility(
    chat_id: uuid.UUID,
    body: VisibilityRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    chats: Annotated[ChatStore, Depends(get_chat_store)],
) -> Chat:
    chat = await _get_owned_chat(chats, chat_id, ctx)
    await chats.update_chat_visibility(chat_id, body.visibility)
    return chat.model_copy(update={"visibility": body.visibility})


@router.get("/history")
async def get_history(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    chats: Annotated[ChatStore, Depends(get_chat_store)],
) -> list[Chat]:
    """Chats of the current user, newest first."""
    if ctx.user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return await chats.get_chats_by_user_id(ctx.user_id)
