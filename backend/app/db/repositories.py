"""Store protocol interfaces for data access."""

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Protocol
from uuid import UUID

from backend.app.models.common import ArtifactKind, Visibility, VoteType
from backend.app.models.documents import Document, Suggestion
from backend.app.models.messages import Chat, Message, Vote


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (sqlite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def next_version_timestamp(latest: datetime | None) -> datetime:
    """Timestamp for a new document version, strictly after `latest`.

    Saves issued within the clock's resolution would otherwise collide on the
    (id, created_at) key.
    """
    now = utcnow()
    if latest is not None and now <= as_utc(latest):
        return as_utc(latest) + timedelta(microseconds=1)
    return now


class DocumentStore(Protocol):
    """Append-only store of document versions."""

    async def save_document(
        self,
        *,
        id: UUID,
        title: str,
        kind: ArtifactKind,
        content: str | None,
        user_id: UUID,
    ) -> Document:
        """Save a new version of a document.

        Args:
            id: Document ID (shared by all versions)
            title: Document title
            kind: Artifact kind
            content: Serialized content
            user_id: Owner

        Returns:
            The stored version, with its created_at
        """
        ...

    async def get_document_by_id(self, id: UUID) -> Document | None:
        """Get the latest version of a document, or None."""
        ...

    async def get_documents_by_id(self, id: UUID) -> list[Document]:
        """Get all versions of a document, oldest first."""
        ...

    async def delete_documents_after(self, id: UUID, timestamp: datetime) -> list[Document]:
        """Delete versions created strictly after `timestamp`.

        Suggestions anchored to the deleted versions are deleted as well.

        Returns:
            The deleted versions
        """
        ...


class SuggestionStore(Protocol):
    """Store of suggestions anchored to document versions."""

    async def save_suggestions(self, suggestions: Sequence[Suggestion]) -> None:
        ...

    async def get_suggestions_by_document_id(self, document_id: UUID) -> list[Suggestion]:
        ...


class ChatStore(Protocol):
    """Store of chats, their messages and message votes."""

    async def save_chat(self, *, id: UUID, user_id: UUID, title: str) -> Chat:
        ...

    async def get_chat_by_id(self, id: UUID) -> Chat | None:
        ...

    async def get_chats_by_user_id(self, user_id: UUID) -> list[Chat]:
        """Get a user's chats, newest first."""
        ...

    async def delete_chat_by_id(self, id: UUID) -> Chat | None:
        """Delete a chat with its votes and messages.

        Returns:
            The deleted chat, or None if it did not exist
        """
        ...

    async def update_chat_visibility(self, id: UUID, visibility: Visibility) -> None:
        ...

    async def save_messages(self, messages: Sequence[Message]) -> None:
        ...

    async def get_messages_by_chat_id(self, chat_id: UUID) -> list[Message]:
        """Get a chat's messages, oldest first."""
        ...

    async def get_message_by_id(self, id: UUID) -> Message | None:
        ...

    async def delete_messages_after(self, chat_id: UUID, timestamp: datetime) -> int:
        """Delete messages created at or after `timestamp`, with their votes.

        Returns:
            Number of deleted messages
        """
        ...

    async def vote_message(self, chat_id: UUID, message_id: UUID, vote: VoteType) -> Vote:
        """Record a vote; an existing vote for the same message is updated."""
        ...

    async def get_votes_by_chat_id(self, chat_id: UUID) -> list[Vote]:
        ...
