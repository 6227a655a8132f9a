"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates chat, message, vote, document and suggestion tables.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create all tables."""
    # chat table
    op.create_table(
        "chat",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("visibility", sa.String(16), server_default="private", nullable=False),
    )
    op.create_index("idx_chat_user_created", "chat", ["user_id", "created_at"])

    # message table
    op.create_table(
        "message",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("chat_id", sa.Uuid(), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("content", json_type, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["chat_id"], ["chat.id"]),
    )
    op.create_index("idx_message_chat_created", "message", ["chat_id", "created_at"])

    # vote table: one vote per message
    op.create_table(
        "vote",
        sa.Column("chat_id", sa.Uuid(), nullable=False),
        sa.Column("message_id", sa.Uuid(), nullable=False),
        sa.Column("is_upvoted", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("chat_id", "message_id"),
        sa.ForeignKeyConstraint(["chat_id"], ["chat.id"]),
        sa.ForeignKeyConstraint(["message_id"], ["message.id"]),
    )

    # document table: one row per version
    op.create_table(
        "document",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("kind", sa.String(16), server_default="text", nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("id", "created_at"),
    )

    # suggestion table
    op.create_table(
        "suggestion",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("document_created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("original_text", sa.Text(), nullable=False),
        sa.Column("suggested_text", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_resolved", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["document_id", "document_created_at"],
            ["document.id", "document.created_at"],
            name="fk_suggestion_document_version",
        ),
    )
    op.create_index("idx_suggestion_document", "suggestion", ["document_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_suggestion_document", table_name="suggestion")
    op.drop_table("suggestion")
    op.drop_table("document")
    op.drop_table("vote")
    op.drop_index("idx_message_chat_created", table_name="message")
    op.drop_table("message")
    op.drop_index("idx_chat_user_created", table_name="chat")
    op.drop_table("chat")
