"""SQL implementations of store interfaces."""

import logging
from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db import models as orm
from backend.app.db.queries import (
    select_chats_for_user,
    select_document_versions,
    select_latest_document,
    select_message_ids_after,
    select_messages,
    select_suggestions,
    select_votes,
)
from backend.app.db.repositories import as_utc, next_version_timestamp, utcnow
from backend.app.models.common import ArtifactKind, Visibility, VoteType
from backend.app.models.documents import Document, Suggestion
from backend.app.models.messages import Chat, Message, Vote

logger = logging.getLogger(__name__)


def _document(row: orm.Document) -> Document:
    return Document(
        id=row.id,
        created_at=as_utc(row.created_at),
        title=row.title,
        content=row.content,
        kind=ArtifactKind(row.kind),
        user_id=row.user_id,
    )


def _suggestion(row: orm.Suggestion) -> Suggestion:
    return Suggestion(
        id=row.id,
        document_id=row.document_id,
        document_created_at=as_utc(row.document_created_at),
        original_text=row.original_text,
        suggested_text=row.suggested_text,
        description=row.description,
        is_resolved=row.is_resolved,
        user_id=row.user_id,
        created_at=as_utc(row.created_at),
    )


def _chat(row: orm.Chat) -> Chat:
    return Chat(
        id=row.id,
        created_at=as_utc(row.created_at),
        title=row.title,
        user_id=row.user_id,
        visibility=Visibility(row.visibility),
    )


def _message(row: orm.Message) -> Message:
    return Message(
        id=row.id,
        chat_id=row.chat_id,
        role=row.role,  # type: ignore
        content=row.content,
        created_at=as_utc(row.created_at),
    )


def _vote(row: orm.Vote) -> Vote:
    return Vote(chat_id=row.chat_id, message_id=row.message_id, is_upvoted=row.is_upvoted)


class SqlDocumentStore:
    """SQL implementation of DocumentStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save_document(
        self,
        *,
        id: UUID,
        title: str,
        kind: ArtifactKind,
        content: str | None,
        user_id: UUID,
    ) -> Document:
        """Insert a new version row."""
        try:
            latest = (await self._session.execute(select_latest_document(id))).scalars().first()
            row = orm.Document(
                id=id,
                created_at=next_version_timestamp(latest.created_at if latest else None),
                title=title,
                content=content,
                kind=kind.value,
                user_id=user_id,
            )
            self._session.add(row)
            document = _document(row)
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to save document in database")
            await self._session.rollback()
            raise
        return document

    async def get_document_by_id(self, id: UUID) -> Document | None:
        try:
            row = (await self._session.execute(select_latest_document(id))).scalars().first()
        except SQLAlchemyError:
            logger.exception("Failed to get document by id from database")
            raise
        return _document(row) if row is not None else None

    async def get_documents_by_id(self, id: UUID) -> list[Document]:
        try:
            rows = (await self._session.execute(select_document_versions(id))).scalars().all()
        except SQLAlchemyError:
            logger.exception("Failed to get documents by id from database")
            raise
        return [_document(row) for row in rows]

    async def delete_documents_after(self, id: UUID, timestamp: datetime) -> list[Document]:
        """Delete later versions, suggestions first to satisfy the foreign key."""
        cutoff = as_utc(timestamp)
        try:
            versions = (await self._session.execute(select_document_versions(id))).scalars().all()
            deleted = [_document(row) for row in versions if as_utc(row.created_at) > cutoff]
            await self._session.execute(
                delete(orm.Suggestion).where(
                    orm.Suggestion.document_id == id,
                    orm.Suggestion.document_created_at > cutoff,
                )
            )
            await self._session.execute(
                delete(orm.Document).where(orm.Document.id == id, orm.Document.created_at > cutoff)
            )
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to delete documents by id after timestamp from database")
            await self._session.rollback()
            raise
        return deleted


class SqlSuggestionStore:
    """SQL implementation of SuggestionStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save_suggestions(self, suggestions: Sequence[Suggestion]) -> None:
        try:
            self._session.add_all(
                orm.Suggestion(
                    id=s.id,
                    document_id=s.document_id,
                    document_created_at=s.document_created_at,
                    original_text=s.original_text,
                    suggested_text=s.suggested_text,
                    description=s.description,
                    is_resolved=s.is_resolved,
                    user_id=s.user_id,
                    created_at=s.created_at,
                )
                for s in suggestions
            )
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to save suggestions in database")
            await self._session.rollback()
            raise

    async def get_suggestions_by_document_id(self, document_id: UUID) -> list[Suggestion]:
        try:
            rows = (await self._session.execute(select_suggestions(document_id))).scalars().all()
        except SQLAlchemyError:
            logger.exception("Failed to get suggestions by document version from database")
            raise
        return [_suggestion(row) for row in rows]


class SqlChatStore:
    """SQL implementation of ChatStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save_chat(self, *, id: UUID, user_id: UUID, title: str) -> Chat:
        try:
            row = orm.Chat(id=id, created_at=utcnow(), title=title, user_id=user_id, visibility="private")
            self._session.add(row)
            chat = _chat(row)
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to save chat in database")
            await self._session.rollback()
            raise
        return chat

    async def get_chat_by_id(self, id: UUID) -> Chat | None:
        try:
            row = await self._session.get(orm.Chat, id)
        except SQLAlchemyError:
            logger.exception("Failed to get chat by id from database")
            raise
        return _chat(row) if row is not None else None

    async def get_chats_by_user_id(self, user_id: UUID) -> list[Chat]:
        try:
            rows = (await self._session.execute(select_chats_for_user(user_id))).scalars().all()
        except SQLAlchemyError:
            logger.exception("Failed to get chats by user from database")
            raise
        return [_chat(row) for row in rows]

    async def delete_chat_by_id(self, id: UUID) -> Chat | None:
        try:
            row = await self._session.get(orm.Chat, id)
            if row is None:
                return None
            chat = _chat(row)
            await self._session.execute(delete(orm.Vote).where(orm.Vote.chat_id == id))
            await self._session.execute(delete(orm.Message).where(orm.Message.chat_id == id))
            await self._session.execute(delete(orm.Chat).where(orm.Chat.id == id))
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to delete chat by id from database")
            await self._session.rollback()
            raise
        return chat

    async def update_chat_visibility(self, id: UUID, visibility: Visibility) -> None:
        try:
            await self._session.execute(
                update(orm.Chat).where(orm.Chat.id == id).values(visibility=visibility.value)
            )
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to update chat visibility in database")
            await self._session.rollback()
            raise

    async def save_messages(self, messages: Sequence[Message]) -> None:
        try:
            self._session.add_all(
                orm.Message(
                    id=m.id,
                    chat_id=m.chat_id,
                    role=m.role,
                    content=m.model_dump(mode="json", by_alias=True)["content"],
                    created_at=m.created_at,
                )
                for m in messages
            )
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to save messages in database")
            await self._session.rollback()
            raise

    async def get_messages_by_chat_id(self, chat_id: UUID) -> list[Message]:
        try:
            rows = (await self._session.execute(select_messages(chat_id))).scalars().all()
        except SQLAlchemyError:
            logger.exception("Failed to get messages by chat id from database")
            raise
        return [_message(row) for row in rows]

    async def get_message_by_id(self, id: UUID) -> Message | None:
        try:
            row = await self._session.get(orm.Message, id)
        except SQLAlchemyError:
            logger.exception("Failed to get message by id from database")
            raise
        return _message(row) if row is not None else None

    async def delete_messages_after(self, chat_id: UUID, timestamp: datetime) -> int:
        try:
            ids = (
                (await self._session.execute(select_message_ids_after(chat_id, as_utc(timestamp))))
                .scalars()
                .all()
            )
            if ids:
                await self._session.execute(
                    delete(orm.Vote).where(orm.Vote.chat_id == chat_id, orm.Vote.message_id.in_(ids))
                )
                await self._session.execute(delete(orm.Message).where(orm.Message.id.in_(ids)))
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to delete messages by chat id after timestamp from database")
            await self._session.rollback()
            raise
        return len(ids)

    async def vote_message(self, chat_id: UUID, message_id: UUID, vote: VoteType) -> Vote:
        """Update the existing vote for the pair, or insert one."""
        try:
            row = await self._session.get(orm.Vote, (chat_id, message_id))
            if row is None:
                row = orm.Vote(chat_id=chat_id, message_id=message_id, is_upvoted=vote == "up")
                self._session.add(row)
            else:
                row.is_upvoted = vote == "up"
            record = _vote(row)
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to upvote message in database")
            await self._session.rollback()
            raise
        return record

    async def get_votes_by_chat_id(self, chat_id: UUID) -> list[Vote]:
        try:
            rows = (await self._session.execute(select_votes(chat_id))).scalars().all()
        except SQLAlchemyError:
            logger.exception("Failed to get votes by chat id from database")
            raise
        return [_vote(row) for row in rows]
