"""One chat turn: model steps, tool calls, persistence."""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol

import httpx

from backend.app.artifacts.registry import DocumentHandlerRegistry
from backend.app.chat.messages import get_most_recent_user_message, sanitize_response_messages
from backend.app.chat.prompts import TITLE_PROMPT, system_prompt
from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.db.repositories import ChatStore, DocumentStore, SuggestionStore, utcnow
from backend.app.llm.client import (
    TITLE_MODEL,
    ChatMessageLike,
    LanguageModelService,
    ReasoningDelta,
    TextDelta,
    ToolCallDelta,
)
from backend.app.models.messages import (
    ChatRequestMessage,
    Message,
    ResponseMessage,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from backend.app.streaming.channel import DataStreamWriter
from backend.app.tools.context import ToolContext
from backend.app.tools.registry import ToolRegistry, tools_for_model
from backend.app.utils.metrics import PrometheusDocumentMetrics

logger = logging.getLogger(__name__)


class EmptyChatError(ValueError):
    """Turn requested without a user message."""

    pass


class ChatStream(DataStreamWriter, Protocol):
    """Data stream that also carries the turn's own named frames."""

    async def send(self, event: str, data: Any) -> None:
        ...


@dataclass
class ChatTurnDeps:
    """Collaborators of a chat turn."""

    chats: ChatStore
    documents: DocumentStore
    suggestions: SuggestionStore
    llm: LanguageModelService
    handlers: DocumentHandlerRegistry
    settings: Settings
    http_client: httpx.AsyncClient | None = None
    metrics: PrometheusDocumentMetrics | None = None


def _clean_title(title: str) -> str:
    return title.replace('"', "").replace(":", "").strip()[:80] or "New chat"


async def generate_title(llm: LanguageModelService, message: ChatRequestMessage) -> str:
    """Short chat title from the first user message."""
    title = await llm.generate_text(model=TITLE_MODEL, system=TITLE_PROMPT, prompt=message.content)
    return _clean_title(title)


async def run_chat_turn(
    *,
    chat_id: uuid.UUID,
    messages: Sequence[ChatRequestMessage],
    model_id: str,
    ctx: RequestContext,
    deps: ChatTurnDeps,
    stream: ChatStream,
) -> list[ResponseMessage]:
    """Answer the latest user message.

    Streams text, reasoning, tool calls and tool results as named frames, and
    document events as data frames, then a terminal finish frame. Chats and
    messages are only persisted for an authenticated context.

    Args:
        chat_id: Chat the turn belongs to; created on first use
        messages: Conversation as sent by the client
        model_id: Chat model alias
        ctx: Request context
        deps: Stores, model and handlers
        stream: Destination for frames

    Returns:
        The sanitized assistant and tool messages of this turn

    Raises:
        EmptyChatError: If there is no user message
    """
    user_message = get_most_recent_user_message(messages)
    if user_message is None:
        raise EmptyChatError("No user message found")

    persist = ctx.is_authenticated
    if persist:
        chat = await deps.chats.get_chat_by_id(chat_id)
        if chat is None:
            title = await generate_title(deps.llm, user_message)
            await deps.chats.save_chat(id=chat_id, user_id=ctx.user_id, title=title)
        await deps.chats.save_messages(
            [
                Message(
                    id=user_message.id,
                    chat_id=chat_id,
                    role="user",
                    content=user_message.content,
                    created_at=utcnow(),
                )
            ]
        )

    registry = ToolRegistry(
        ToolContext(
            ctx=ctx,
            data_stream=stream,
            llm=deps.llm,
            documents=deps.documents,
            suggestions=deps.suggestions,
            handlers=deps.handlers,
            settings=deps.settings,
            http_client=deps.http_client,
            metrics=deps.metrics,
        ),
        tools_for_model(model_id),
    )

    history: list[ChatMessageLike] = list(messages)
    response_messages: list[ResponseMessage] = []
    reasoning = ""
    finish_reason = "stop"

    for step in range(deps.settings.max_chat_steps):
        text = ""
        calls: list[ToolCallDelta] = []
        async for delta in deps.llm.stream_chat(
            model=model_id,
            system=system_prompt(model_id),
            messages=history,
            tools=registry.definitions,
        ):
            if isinstance(delta, TextDelta):
                text += delta.text
                await stream.send("text-delta", {"text": delta.text})
            elif isinstance(delta, ReasoningDelta):
                reasoning += delta.text
                await stream.send("reasoning", {"text": delta.text})
            else:
                calls.append(delta)
                await stream.send(
                    "tool-call",
                    {"toolCallId": delta.tool_call_id, "toolName": delta.tool_name, "args": delta.args},
                )

        assistant = ResponseMessage(
            id=uuid.uuid4(),
            role="assistant",
            content=([TextPart(text=text)] if text else [])
            + [ToolCallPart(tool_call_id=c.tool_call_id, tool_name=c.tool_name, args=c.args) for c in calls],
        )
        response_messages.append(assistant)
        history.append(assistant)

        if not calls:
            finish_reason = "stop"
            break

        results: list[ToolResultPart] = []
        for call in calls:
            logger.info("Step %d: executing tool %s", step, call.tool_name)
            result = await registry.execute(call.tool_name, call.args)
            await stream.send(
                "tool-result",
                {"toolCallId": call.tool_call_id, "toolName": call.tool_name, "result": result},
            )
            results.append(ToolResultPart(tool_call_id=call.tool_call_id, tool_name=call.tool_name, result=result))

        tool_message = ResponseMessage(id=uuid.uuid4(), role="tool", content=results)
        response_messages.append(tool_message)
        history.append(tool_message)
        finish_reason = "tool-calls"

    sanitized = sanitize_response_messages(response_messages, reasoning or None)

    if persist:
        # Distinct timestamps keep the turn's messages in order
        base = utcnow()
        await deps.chats.save_messages(
            [
                Message(
                    id=m.id,
                    chat_id=chat_id,
                    role=m.role,
                    content=m.content,
                    created_at=base + timedelta(microseconds=i),
                )
                for i, m in enumerate(sanitized)
            ]
        )

    await stream.send("finish", {"finishReason": finish_reason})
    return sanitized
