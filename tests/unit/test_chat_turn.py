"""Unit tests for chat turns."""

import uuid

import pytest

from backend.app.artifacts.registry import build_document_handler_registry
from backend.app.chat.turn import ChatTurnDeps, EmptyChatError, generate_title, run_chat_turn
from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.db.inmemory import InMemoryChatStore, InMemoryDocumentStore, InMemorySuggestionStore
from backend.app.llm.client import (
    DEFAULT_CHAT_MODEL,
    REASONING_CHAT_MODEL,
    DeterministicStubClient,
    ReasoningDelta,
    TextDelta,
    ToolCallDelta,
)
from backend.app.models.messages import ChatRequestMessage, ReasoningPart, TextPart, ToolCallPart
from backend.app.streaming.channel import DATA_FRAME, RecordingDataStream

USER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000bb")


def make_deps(llm: DeterministicStubClient, settings: Settings | None = None) -> ChatTurnDeps:
    suggestions = InMemorySuggestionStore()
    documents = InMemoryDocumentStore(suggestions=suggestions)
    return ChatTurnDeps(
        chats=InMemoryChatStore(),
        documents=documents,
        suggestions=suggestions,
        llm=llm,
        handlers=build_document_handler_registry(llm, documents),
        settings=settings or Settings(),
    )


def user_message(text: str) -> ChatRequestMessage:
    return ChatRequestMessage(id=uuid.uuid4(), role="user", content=text)


class TestRunChatTurn:
    """Test the step loop, streamed frames and persistence."""

    @pytest.mark.asyncio
    async def test_plain_answer(self) -> None:
        deps = make_deps(DeterministicStubClient())
        stream = RecordingDataStream()
        chat_id = uuid.uuid4()

        messages = await run_chat_turn(
            chat_id=chat_id,
            messages=[user_message("hello")],
            model_id=DEFAULT_CHAT_MODEL,
            ctx=RequestContext(user_id=USER_ID),
            deps=deps,
            stream=stream,
        )

        assert [f.event for f in stream.frames] == ["text-delta", "finish"]
        assert stream.frames[0].data == {"text": "You said: hello"}
        assert stream.frames[-1].data == {"finishReason": "stop"}
        assert len(messages) == 1
        assert messages[0].content == [TextPart(text="You said: hello")]

        chat = await deps.chats.get_chat_by_id(chat_id)
        assert chat is not None
        assert chat.title == "hello"
        assert chat.user_id == USER_ID
        stored = await deps.chats.get_messages_by_chat_id(chat_id)
        assert [m.role for m in stored] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_tool_call_round_trip(self) -> None:
        llm = DeterministicStubClient(
            chat_steps=[
                [
                    TextDelta("Creating it."),
                    ToolCallDelta("call-1", "createDocument", {"title": "Notes", "kind": "text"}),
                ],
                [TextDelta("Done.")],
            ]
        )
        deps = make_deps(llm)
        stream = RecordingDataStream()

        messages = await run_chat_turn(
            chat_id=uuid.uuid4(),
            messages=[user_message("write notes")],
            model_id=DEFAULT_CHAT_MODEL,
            ctx=RequestContext(user_id=USER_ID),
            deps=deps,
            stream=stream,
        )

        named = [f.event for f in stream.frames if f.event != DATA_FRAME]
        assert named == ["text-delta", "tool-call", "tool-result", "text-delta", "finish"]
        assert [e.type for e in stream.events][:4] == ["kind", "id", "title", "clear"]

        tool_result = next(f for f in stream.frames if f.event == "tool-result")
        assert tool_result.data["toolCallId"] == "call-1"
        assert tool_result.data["result"]["title"] == "Notes"

        assert [m.role for m in messages] == ["assistant", "tool", "assistant"]
        assert any(isinstance(p, ToolCallPart) for p in messages[0].content)
        document_id = uuid.UUID(tool_result.data["result"]["id"])
        assert await deps.documents.get_document_by_id(document_id) is not None

    @pytest.mark.asyncio
    async def test_step_limit_ends_with_tool_calls(self) -> None:
        call = ToolCallDelta("call-x", "getWeather", {"latitude": "north", "longitude": 0})
        llm = DeterministicStubClient(chat_steps=[[call], [call]])
        deps = make_deps(llm, Settings(max_chat_steps=2))
        stream = RecordingDataStream()

        await run_chat_turn(
            chat_id=uuid.uuid4(),
            messages=[user_message("weather?")],
            model_id=DEFAULT_CHAT_MODEL,
            ctx=RequestContext(),
            deps=deps,
            stream=stream,
        )

        results = [f.data["result"] for f in stream.frames if f.event == "tool-result"]
        assert results == [{"error": "Invalid arguments for getWeather"}] * 2
        assert stream.frames[-1].data == {"finishReason": "tool-calls"}

    @pytest.mark.asyncio
    async def test_reasoning_attached_and_no_tools_offered(self) -> None:
        llm = DeterministicStubClient(chat_steps=[[ReasoningDelta("thinking"), TextDelta("answer")]])
        deps = make_deps(llm)
        stream = RecordingDataStream()

        messages = await run_chat_turn(
            chat_id=uuid.uuid4(),
            messages=[user_message("why?")],
            model_id=REASONING_CHAT_MODEL,
            ctx=RequestContext(),
            deps=deps,
            stream=stream,
        )

        assert llm.calls[-1]["tools"] == []
        assert stream.frames[0].event == "reasoning"
        assert ReasoningPart(reasoning="thinking") in messages[0].content

    @pytest.mark.asyncio
    async def test_anonymous_turn_is_not_persisted(self) -> None:
        deps = make_deps(DeterministicStubClient())
        chat_id = uuid.uuid4()

        await run_chat_turn(
            chat_id=chat_id,
            messages=[user_message("hi")],
            model_id=DEFAULT_CHAT_MODEL,
            ctx=RequestContext(),
            deps=deps,
            stream=RecordingDataStream(),
        )

        assert await deps.chats.get_chat_by_id(chat_id) is None
        assert await deps.chats.get_messages_by_chat_id(chat_id) == []

    @pytest.mark.asyncio
    async def test_existing_chat_keeps_title(self) -> None:
        llm = DeterministicStubClient()
        deps = make_deps(llm)
        chat = await deps.chats.save_chat(id=uuid.uuid4(), user_id=USER_ID, title="Trip planning")

        await run_chat_turn(
            chat_id=chat.id,
            messages=[user_message("and the second day?")],
            model_id=DEFAULT_CHAT_MODEL,
            ctx=RequestContext(user_id=USER_ID),
            deps=deps,
            stream=RecordingDataStream(),
        )

        assert (await deps.chats.get_chat_by_id(chat.id)).title == "Trip planning"
        assert all(call["method"] != "generate_text" for call in llm.calls)

    @pytest.mark.asyncio
    async def test_requires_user_message(self) -> None:
        deps = make_deps(DeterministicStubClient())
        assistant_only = ChatRequestMessage(id=uuid.uuid4(), role="assistant", content="hi")

        with pytest.raises(EmptyChatError):
            await run_chat_turn(
                chat_id=uuid.uuid4(),
                messages=[assistant_only],
                model_id=DEFAULT_CHAT_MODEL,
                ctx=RequestContext(),
                deps=deps,
                stream=RecordingDataStream(),
            )


@pytest.mark.asyncio
async def test_generate_title_strips_quotes_and_colons() -> None:
    title = await generate_title(DeterministicStubClient(), user_message('Plan: a "fun" weekend'))

    assert title == "Plan a fun weekend"
