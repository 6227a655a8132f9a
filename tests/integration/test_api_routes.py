"""API route tests with in-memory stores and the deterministic model client."""

import asyncio
import json
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from backend.app.api.auth import DEV_USER_ID
from backend.app.api.dependencies import get_chat_store, get_document_store, get_suggestion_store
from backend.app.api.routes.chat import stream_turn_sse
from backend.app.db.inmemory import InMemoryChatStore, InMemoryDocumentStore, InMemorySuggestionStore
from backend.app.db.repositories import utcnow
from backend.app.llm.client import DeterministicStubClient, TextDelta, ToolCallDelta, get_llm_client
from backend.app.main import app
from backend.app.models.common import ArtifactKind
from backend.app.models.documents import Suggestion
from backend.app.models.messages import Message
from backend.app.streaming.channel import QueueDataStream

OTHER_USER = uuid.UUID("00000000-0000-0000-0000-0000000000dd")
OTHER_AUTH = {"Authorization": f"Bearer {OTHER_USER}"}


@dataclass
class Stores:
    documents: InMemoryDocumentStore
    suggestions: InMemorySuggestionStore
    chats: InMemoryChatStore
    llm: DeterministicStubClient


@pytest.fixture
def stores() -> Iterator[Stores]:
    suggestions = InMemorySuggestionStore()
    stores = Stores(
        documents=InMemoryDocumentStore(suggestions=suggestions),
        suggestions=suggestions,
        chats=InMemoryChatStore(),
        llm=DeterministicStubClient(),
    )
    app.dependency_overrides[get_document_store] = lambda: stores.documents
    app.dependency_overrides[get_suggestion_store] = lambda: stores.suggestions
    app.dependency_overrides[get_chat_store] = lambda: stores.chats
    app.dependency_overrides[get_llm_client] = lambda: stores.llm
    yield stores
    app.dependency_overrides.clear()


@pytest.fixture
def client(stores: Stores) -> TestClient:
    return TestClient(app)


def parse_sse(body: str) -> list[tuple[str, object]]:
    frames = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        frames.append((lines["event"], json.loads(lines["data"])))
    return frames


class TestDocumentRoutes:
    """Test /document."""

    def test_save_then_list_versions(self, client: TestClient) -> None:
        document_id = uuid.uuid4()

        first = client.post(f"/document?id={document_id}", json={"title": "Notes", "kind": "text", "content": "v1"})
        second = client.post(f"/document?id={document_id}", json={"title": "Notes", "kind": "text", "content": "v2"})

        assert first.status_code == 200
        assert second.json()["userId"] == str(DEV_USER_ID)
        response = client.get(f"/document?id={document_id}")
        assert response.status_code == 200
        assert [v["content"] for v in response.json()] == ["v1", "v2"]

    def test_unknown_document_is_404(self, client: TestClient) -> None:
        assert client.get(f"/document?id={uuid.uuid4()}").status_code == 404

    def test_other_users_document_is_403(self, client: TestClient) -> None:
        document_id = uuid.uuid4()
        client.post(f"/document?id={document_id}", json={"title": "Notes", "content": "v1"})

        assert client.get(f"/document?id={document_id}", headers=OTHER_AUTH).status_code == 403
        saved = client.post(f"/document?id={document_id}", json={"title": "Mine"}, headers=OTHER_AUTH)
        assert saved.status_code == 403

    def test_delete_later_versions(self, client: TestClient) -> None:
        document_id = uuid.uuid4()
        first = client.post(f"/document?id={document_id}", json={"title": "Notes", "content": "v1"}).json()
        client.post(f"/document?id={document_id}", json={"title": "Notes", "content": "v2"})

        response = client.delete("/document", params={"id": str(document_id), "timestamp": first["createdAt"]})

        assert response.status_code == 200
        assert [v["content"] for v in response.json()] == ["v2"]
        assert len(client.get(f"/document?id={document_id}").json()) == 1

    def test_invalid_kind_is_rejected(self, client: TestClient) -> None:
        response = client.post(f"/document?id={uuid.uuid4()}", json={"title": "Clip", "kind": "video"})

        assert response.status_code == 422


class TestSuggestionRoutes:
    """Test /suggestions."""

    @pytest.mark.asyncio
    async def test_lists_owned_suggestions(self, client: TestClient, stores: Stores) -> None:
        document = await stores.documents.save_document(
            id=uuid.uuid4(), title="Essay", kind=ArtifactKind.text, content="A.", user_id=DEV_USER_ID
        )
        await stores.suggestions.save_suggestions(
            [
                Suggestion(
                    id=uuid.uuid4(),
                    document_id=document.id,
                    document_created_at=document.created_at,
                    original_text="A.",
                    suggested_text="B.",
                    user_id=DEV_USER_ID,
                    created_at=utcnow(),
                )
            ]
        )

        response = client.get(f"/suggestions?documentId={document.id}")

        assert response.status_code == 200
        assert response.json()[0]["suggestedText"] == "B."
        assert client.get(f"/suggestions?documentId={document.id}", headers=OTHER_AUTH).status_code == 403

    def test_no_suggestions(self, client: TestClient) -> None:
        response = client.get(f"/suggestions?documentId={uuid.uuid4()}")

        assert response.status_code == 200
        assert response.json() == []


class TestVoteRoutes:
    """Test /vote."""

    @pytest.mark.asyncio
    async def test_vote_then_revote(self, client: TestClient, stores: Stores) -> None:
        chat = await stores.chats.save_chat(id=uuid.uuid4(), user_id=DEV_USER_ID, title="Trip")
        message_id = uuid.uuid4()

        client.patch("/vote", json={"chatId": str(chat.id), "messageId": str(message_id), "type": "up"})
        response = client.patch("/vote", json={"chatId": str(chat.id), "messageId": str(message_id), "type": "down"})

        assert response.status_code == 200
        votes = client.get(f"/vote?chatId={chat.id}").json()
        assert votes == [{"chatId": str(chat.id), "messageId": str(message_id), "isUpvoted": False}]

    def test_unknown_chat_is_404(self, client: TestClient) -> None:
        response = client.patch(
            "/vote", json={"chatId": str(uuid.uuid4()), "messageId": str(uuid.uuid4()), "type": "up"}
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_other_users_chat_is_403(self, client: TestClient, stores: Stores) -> None:
        chat = await stores.chats.save_chat(id=uuid.uuid4(), user_id=DEV_USER_ID, title="Trip")

        assert client.get(f"/vote?chatId={chat.id}", headers=OTHER_AUTH).status_code == 403


class TestChatRoutes:
    """Test /chat and /history."""

    def _body(self, chat_id: uuid.UUID, text: str = "hello", model: str = "chat-model-small") -> dict:
        return {
            "id": str(chat_id),
            "messages": [{"id": str(uuid.uuid4()), "role": "user", "content": text}],
            "selectedChatModel": model,
        }

    def test_streams_turn_and_records_history(self, client: TestClient) -> None:
        chat_id = uuid.uuid4()

        response = client.post("/chat", json=self._body(chat_id))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        frames = parse_sse(response.text)
        assert frames[0] == ("text-delta", {"text": "You said: hello"})
        assert frames[-1] == ("finish", {"finishReason": "stop"})

        history = client.get("/history").json()
        assert [c["id"] for c in history] == [str(chat_id)]
        messages = client.get(f"/chat/{chat_id}/messages").json()
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[1]["content"] == "You said: hello"

    def test_document_events_share_the_stream(self, client: TestClient, stores: Stores) -> None:
        stores.llm.chat_steps = [
            [ToolCallDelta("call-1", "createDocument", {"title": "Notes", "kind": "text"})],
            [TextDelta("Done.")],
        ]

        response = client.post("/chat", json=self._body(uuid.uuid4(), "write notes"))

        frames = parse_sse(response.text)
        data = [payload for event, payload in frames if event == "data"]
        assert [d["type"] for d in data][:4] == ["kind", "id", "title", "clear"]
        assert data[-1]["type"] == "finish"
        tool_result = next(payload for event, payload in frames if event == "tool-result")
        assert tool_result["result"]["content"] == "A document was created and is now visible to the user."

    def test_failed_turn_ends_with_error_frame(self, client: TestClient, stores: Stores) -> None:
        stores.llm.stream_chat = _failing_stream

        response = client.post("/chat", json=self._body(uuid.uuid4()))

        assert response.status_code == 200
        assert parse_sse(response.text)[-1] == ("error", {"message": "Oops, an error occurred!"})

    def test_rejects_unknown_model(self, client: TestClient) -> None:
        response = client.post("/chat", json=self._body(uuid.uuid4(), model="gpt-unknown"))

        assert response.status_code == 400

    def test_rejects_turn_without_user_message(self, client: TestClient) -> None:
        body = self._body(uuid.uuid4())
        body["messages"][0]["role"] = "assistant"

        assert client.post("/chat", json=body).status_code == 400

    @pytest.mark.asyncio
    async def test_other_users_chat(self, client: TestClient, stores: Stores) -> None:
        chat = await stores.chats.save_chat(id=uuid.uuid4(), user_id=DEV_USER_ID, title="Trip")

        assert client.post("/chat", json=self._body(chat.id), headers=OTHER_AUTH).status_code == 403
        assert client.delete(f"/chat/{chat.id}", headers=OTHER_AUTH).status_code == 403
        assert client.get(f"/chat/{chat.id}/messages", headers=OTHER_AUTH).status_code == 403

    @pytest.mark.asyncio
    async def test_public_chat_is_readable_by_others(self, client: TestClient, stores: Stores) -> None:
        chat = await stores.chats.save_chat(id=uuid.uuid4(), user_id=DEV_USER_ID, title="Trip")

        response = client.patch(f"/chat/{chat.id}/visibility", json={"visibility": "public"})

        assert response.json()["visibility"] == "public"
        assert client.get(f"/chat/{chat.id}/messages", headers=OTHER_AUTH).status_code == 200

    @pytest.mark.asyncio
    async def test_delete_trailing_messages(self, client: TestClient, stores: Stores) -> None:
        chat = await stores.chats.save_chat(id=uuid.uuid4(), user_id=DEV_USER_ID, title="Trip")
        base = utcnow()
        first = Message(id=uuid.uuid4(), chat_id=chat.id, role="user", content="one", created_at=base)
        second = Message(
            id=uuid.uuid4(), chat_id=chat.id, role="user", content="two", created_at=base + timedelta(seconds=1)
        )
        await stores.chats.save_messages([first, second])

        response = client.delete(
            f"/chat/{chat.id}/messages", params={"after": second.created_at.isoformat()}
        )

        assert response.json() == {"deleted": 1}
        assert [m.content for m in await stores.chats.get_messages_by_chat_id(chat.id)] == ["one"]

    @pytest.mark.asyncio
    async def test_delete_chat(self, client: TestClient, stores: Stores) -> None:
        chat = await stores.chats.save_chat(id=uuid.uuid4(), user_id=DEV_USER_ID, title="Trip")

        assert client.delete(f"/chat/{chat.id}").status_code == 200
        assert client.get(f"/chat/{chat.id}/messages").status_code == 404

    def test_history_requires_valid_token(self, client: TestClient) -> None:
        response = client.get("/history", headers={"Authorization": "Token abc"})

        assert response.status_code == 401


async def _failing_stream(**kwargs):
    raise RuntimeError("provider down")
    yield  # pragma: no cover


class TestStreamTurnSse:
    """Test the background turn behind a streamed chat response."""

    @pytest.mark.asyncio
    async def test_consumer_leaving_cancels_turn(self) -> None:
        stream = QueueDataStream()
        cancelled = asyncio.Event()

        async def turn() -> None:
            await stream.send("text-delta", {"text": "hi"})
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        chunks = stream_turn_sse(stream, turn())
        assert await chunks.__anext__() == 'event: text-delta\ndata: {"text": "hi"}\n\n'

        await chunks.aclose()

        await asyncio.wait_for(cancelled.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_finished_turn_streams_every_frame(self) -> None:
        stream = QueueDataStream()

        async def turn() -> None:
            await stream.send("text-delta", {"text": "a"})
            await stream.send("finish", {})
            stream.close()

        chunks = [chunk async for chunk in stream_turn_sse(stream, turn())]

        assert [chunk.split("\n")[0] for chunk in chunks] == ["event: text-delta", "event: finish"]
