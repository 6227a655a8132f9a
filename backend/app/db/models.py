"""SQLAlchemy ORM models for chats, messages, votes, documents and suggestions."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON elsewhere (sqlite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Chat(Base):
    """Chat table - one conversation owned by a user."""

    __tablename__ = "chat"
    __table_args__ = (Index("idx_chat_user_created", "user_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    visibility: Mapped[str] = mapped_column(String(16), nullable=False, default="private")

    # Relationships
    messages: Mapped[list["Message"]] = relationship("Message", back_populates="chat")


class Message(Base):
    """Message table - content is a string or a list of typed parts."""

    __tablename__ = "message"
    __table_args__ = (Index("idx_message_chat_created", "chat_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    chat_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("chat.id"), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[Any] = mapped_column(JsonType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    chat: Mapped["Chat"] = relationship("Chat", back_populates="messages")


class Vote(Base):
    """Vote table - at most one vote per (chat, message)."""

    __tablename__ = "vote"

    chat_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("chat.id"), primary_key=True)
    message_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("message.id"), primary_key=True)
    is_upvoted: Mapped[bool] = mapped_column(Boolean, nullable=False)


class Document(Base):
    """Document table - every save is a new (id, created_at) version."""

    __tablename__ = "document"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default="text")
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)


class Suggestion(Base):
    """Suggestion table - anchored to one document version."""

    __tablename__ = "suggestion"
    __table_args__ = (
        ForeignKeyConstraint(
            ["document_id", "document_created_at"],
            ["document.id", "document.created_at"],
            name="fk_suggestion_document_version",
        ),
        Index("idx_suggestion_document", "document_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    document_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    original_text: Mapped[str] = mapped_column(Text, nullable=False)
    suggested_text: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
