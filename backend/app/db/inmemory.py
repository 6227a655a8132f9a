"""In-memory implementations of store interfaces."""

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from backend.app.db.repositories import as_utc, next_version_timestamp, utcnow
from backend.app.models.common import ArtifactKind, Visibility, VoteType
from backend.app.models.documents import Document, Suggestion
from backend.app.models.messages import Chat, Message, Vote


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStore."""

    def __init__(self, suggestions: "InMemorySuggestionStore | None" = None) -> None:
        self._versions: dict[UUID, list[Document]] = {}
        self.suggestions = suggestions

    async def save_document(
        self,
        *,
        id: UUID,
        title: str,
        kind: ArtifactKind,
        content: str | None,
        user_id: UUID,
    ) -> Document:
        """Append a new version."""
        versions = self._versions.setdefault(id, [])
        latest = versions[-1].created_at if versions else None
        document = Document(
            id=id,
            created_at=next_version_timestamp(latest),
            title=title,
            content=content,
            kind=kind,
            user_id=user_id,
        )
        versions.append(document)
        return document

    async def get_document_by_id(self, id: UUID) -> Document | None:
        versions = self._versions.get(id)
        return versions[-1] if versions else None

    async def get_documents_by_id(self, id: UUID) -> list[Document]:
        return list(self._versions.get(id, []))

    async def delete_documents_after(self, id: UUID, timestamp: datetime) -> list[Document]:
        """Drop later versions and the suggestions anchored to them."""
        cutoff = as_utc(timestamp)
        versions = self._versions.get(id, [])
        deleted = [doc for doc in versions if as_utc(doc.created_at) > cutoff]
        self._versions[id] = [doc for doc in versions if as_utc(doc.created_at) <= cutoff]

        if self.suggestions is not None:
            self.suggestions.delete_for_versions(id, cutoff)

        return deleted


class InMemorySuggestionStore:
    """In-memory implementation of SuggestionStore."""

    def __init__(self) -> None:
        self._suggestions: list[Suggestion] = []

    async def save_suggestions(self, suggestions: Sequence[Suggestion]) -> None:
        self._suggestions.extend(suggestions)

    async def get_suggestions_by_document_id(self, document_id: UUID) -> list[Suggestion]:
        return [s for s in self._suggestions if s.document_id == document_id]

    def delete_for_versions(self, document_id: UUID, after: datetime) -> None:
        self._suggestions = [
            s
            for s in self._suggestions
            if not (s.document_id == document_id and as_utc(s.document_created_at) > after)
        ]


class InMemoryChatStore:
    """In-memory implementation of ChatStore."""

    def __init__(self) -> None:
        self._chats: dict[UUID, Chat] = {}
        self._messages: dict[UUID, Message] = {}
        self._votes: dict[tuple[UUID, UUID], Vote] = {}

    async def save_chat(self, *, id: UUID, user_id: UUID, title: str) -> Chat:
        chat = Chat(id=id, created_at=utcnow(), title=title, user_id=user_id)
        self._chats[id] = chat
        return chat

    async def get_chat_by_id(self, id: UUID) -> Chat | None:
        return self._chats.get(id)

    async def get_chats_by_user_id(self, user_id: UUID) -> list[Chat]:
        chats = [chat for chat in self._chats.values() if chat.user_id == user_id]
        return sorted(chats, key=lambda chat: as_utc(chat.created_at), reverse=True)

    async def delete_chat_by_id(self, id: UUID) -> Chat | None:
        chat = self._chats.pop(id, None)
        if chat is None:
            return None
        self._votes = {key: vote for key, vote in self._votes.items() if key[0] != id}
        self._messages = {mid: m for mid, m in self._messages.items() if m.chat_id != id}
        return chat

    async def update_chat_visibility(self, id: UUID, visibility: Visibility) -> None:
        chat = self._chats.get(id)
        if chat is not None:
            self._chats[id] = chat.model_copy(update={"visibility": visibility})

    async def save_messages(self, messages: Sequence[Message]) -> None:
        for message in messages:
            self._messages[message.id] = message

    async def get_messages_by_chat_id(self, chat_id: UUID) -> list[Message]:
        messages = [m for m in self._messages.values() if m.chat_id == chat_id]
        return sorted(messages, key=lambda m: as_utc(m.created_at))

    async def get_message_by_id(self, id: UUID) -> Message | None:
        return self._messages.get(id)

    async def delete_messages_after(self, chat_id: UUID, timestamp: datetime) -> int:
        cutoff = as_utc(timestamp)
        doomed = {
            mid
            for mid, m in self._messages.items()
            if m.chat_id == chat_id and as_utc(m.created_at) >= cutoff
        }
        self._votes = {key: vote for key, vote in self._votes.items() if key[1] not in doomed}
        for mid in doomed:
            del self._messages[mid]
        return len(doomed)

    async def vote_message(self, chat_id: UUID, message_id: UUID, vote: VoteType) -> Vote:
        record = Vote(chat_id=chat_id, message_id=message_id, is_upvoted=vote == "up")
        self._votes[(chat_id, message_id)] = record
        return record

    async def get_votes_by_chat_id(self, chat_id: UUID) -> list[Vote]:
        return [vote for key, vote in self._votes.items() if key[0] == chat_id]
