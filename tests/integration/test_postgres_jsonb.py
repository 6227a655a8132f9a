"""PostgreSQL-specific integration test for JSONB message content.

This test requires a real PostgreSQL instance and validates that message parts
stored in the JSONB column come back unchanged (SQLite stores plain JSON).

Run with: DATABASE_URL='postgresql://...' pytest -m postgres
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.models import Message as MessageRow
from backend.app.db.repositories import utcnow
from backend.app.db.sql_repositories import SqlChatStore
from backend.app.models.messages import Message, ReasoningPart, TextPart, ToolCallPart, ToolResultPart


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_jsonb_message_parts_storage(postgres_session: AsyncSession) -> None:
    """Test that structured message content round-trips through JSONB."""
    store = SqlChatStore(postgres_session)
    chat = await store.save_chat(id=uuid.uuid4(), user_id=uuid.uuid4(), title="JSONB chat")
    message = Message(
        id=uuid.uuid4(),
        chat_id=chat.id,
        role="assistant",
        content=[
            TextPart(text="Here is the forecast."),
            ToolCallPart(tool_call_id="call-1", tool_name="getWeather", args={"latitude": 1.5, "longitude": 2.5}),
            ReasoningPart(reasoning="User asked for weather."),
        ],
        created_at=utcnow(),
    )
    tool_message = Message(
        id=uuid.uuid4(),
        chat_id=chat.id,
        role="tool",
        content=[
            ToolResultPart(
                tool_call_id="call-1",
                tool_name="getWeather",
                result={"current": {"temperature_2m": 9.4}, "daily": {"sunrise": ["08:21"]}},
            )
        ],
        created_at=message.created_at + timedelta(microseconds=1),
    )

    await store.save_messages([message, tool_message])

    raw = (await postgres_session.execute(select(MessageRow).where(MessageRow.id == message.id))).scalar_one()
    assert raw.content[1]["toolCallId"] == "call-1"
    assert raw.content[1]["args"]["latitude"] == 1.5

    loaded = await store.get_messages_by_chat_id(chat.id)
    assert [m.content for m in loaded] == [message.content, tool_message.content]
