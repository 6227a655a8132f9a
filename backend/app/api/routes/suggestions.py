"""Suggestion listing endpoint."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from backend.app.api.auth import get_current_context, require_owner
from backend.app.api.dependencies import get_suggestion_store
from backend.app.db.context import RequestContext
from backend.app.db.repositories import SuggestionStore
from backend.app.models.documents import Suggestion

router = APIRouter(tags=["suggestions"])


@router.get("/suggestions")
async def get_suggestions(
    document_id: Annotated[uuid.UUID, Query(alias="documentId")],
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    suggestions: Annotated[SuggestionStore, Depends(get_suggestion_store)],
) -> list[Suggestion]:
    found = await suggestions.get_suggestions_by_document_id(document_id)
    if found:
        require_owner(found[0].user_id, ctx)
    return found
