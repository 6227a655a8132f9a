"""Select helpers shared by the SQL stores."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, select

from backend.app.db.models import Chat, Document, Message, Suggestion, Vote


def select_document_versions(document_id: UUID) -> Select:
    """Select all versions of a document, oldest first."""
    return select(Document).where(Document.id == document_id).order_by(Document.created_at.asc())


def select_latest_document(document_id: UUID) -> Select:
    return select(Document).where(Document.id == document_id).order_by(Document.created_at.desc()).limit(1)


def select_suggestions(document_id: UUID) -> Select:
    return select(Suggestion).where(Suggestion.document_id == document_id).order_by(Suggestion.created_at.asc())


def select_chats_for_user(user_id: UUID) -> Select:
    """Select a user's chats, newest first.

    Args:
        user_id: Owner of the chats

    Returns:
        Select scoped to the owner
    """
    return select(Chat).where(Chat.user_id == user_id).order_by(Chat.created_at.desc())


def select_messages(chat_id: UUID) -> Select:
    return select(Message).where(Message.chat_id == chat_id).order_by(Message.created_at.asc())


def select_message_ids_after(chat_id: UUID, timestamp: datetime) -> Select:
    """Select ids of a chat's messages created at or after `timestamp`."""
    return select(Message.id).where(Message.chat_id == chat_id, Message.created_at >= timestamp)


def select_votes(chat_id: UUID) -> Select:
    return select(Vote).where(Vote.chat_id == chat_id)
