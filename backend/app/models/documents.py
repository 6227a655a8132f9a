"""Document and suggestion domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backend.app.models.common import ArtifactKind


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Document(CamelModel):
    """One immutable version of an artifact.

    Identity is (id, created_at); the current version of an id is the one with
    the greatest created_at.
    """

    id: UUID
    created_at: datetime
    title: str
    content: str | None = None
    kind: ArtifactKind = ArtifactKind.text
    user_id: UUID


class Suggestion(CamelModel):
    """Assistant-proposed replacement anchored to a document version."""

    id: UUID
    document_id: UUID
    document_created_at: datetime
    original_text: str
    suggested_text: str
    description: str | None = None
    is_resolved: bool = False
    user_id: UUID
    created_at: datetime


class StreamedSuggestion(CamelModel):
    """Suggestion as forwarded to the client before it is persisted."""

    id: UUID
    document_id: UUID
    original_text: str
    suggested_text: str
    description: str | None = None
    is_resolved: bool = False


class UISuggestion(CamelModel):
    """Suggestion with positions resolved against the open document.

    Never persisted; recomputed whenever the live document changes.
    """

    id: UUID
    document_id: UUID
    original_text: str
    suggested_text: str
    description: str | None = None
    is_resolved: bool = False
    selection_start: int = Field(0, ge=0)
    selection_end: int = Field(0, ge=0)


class SuggestionElement(BaseModel):
    """Element schema requested from the artifact model."""

    originalSentence: str = Field(..., description="The original sentence")
    suggestedSentence: str = Field(..., description="The suggested sentence")
    description: str = Field(..., description="The description of the suggestion")
