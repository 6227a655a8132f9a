"""requestSuggestions tool."""

import logging
import uuid
from typing import Any

from pydantic import BaseModel, Field

from backend.app.chat.prompts import suggestions_prompt
from backend.app.db.repositories import utcnow
from backend.app.llm.client import ARTIFACT_MODEL
from backend.app.models.documents import StreamedSuggestion, Suggestion, SuggestionElement
from backend.app.models.events import StreamEvent, StreamEventType
from backend.app.tools.context import ToolContext
from backend.app.tools.documents import parse_document_id

logger = logging.getLogger(__name__)


class RequestSuggestionsArgs(BaseModel):
    documentId: str = Field(..., description="The ID of the document to request edits")


async def request_suggestions(tools: ToolContext, args: RequestSuggestionsArgs) -> dict[str, Any]:
    """Generate writing suggestions for the latest version of a document.

    Each suggestion is forwarded to the client as soon as the model completes
    it. Persistence happens once, after the model stream ends, and only for an
    authenticated request; suggestions streamed before a failure are not saved.

    Returns:
        Summary of the request, or `{"error": "Document not found"}` when the
        document is missing or has no content
    """
    document_id = parse_document_id(args.documentId)
    document = await tools.documents.get_document_by_id(document_id) if document_id else None
    if document is None or not document.content:
        return {"error": "Document not found"}

    max_suggestions = tools.settings.max_suggestions
    streamed: list[StreamedSuggestion] = []

    async for element in tools.llm.stream_elements(
        model=ARTIFACT_MODEL,
        system=suggestions_prompt(max_suggestions),
        prompt=document.content,
        schema=SuggestionElement,
    ):
        suggestion = StreamedSuggestion(
            id=uuid.uuid4(),
            document_id=document.id,
            original_text=element.originalSentence,
            suggested_text=element.suggestedSentence,
            description=element.description,
            is_resolved=False,
        )
        await tools.data_stream.write(
            StreamEvent.of(StreamEventType.suggestion, suggestion.model_dump(mode="json", by_alias=True))
        )
        streamed.append(suggestion)
        if len(streamed) >= max_suggestions:
            break

    if tools.metrics is not None:
        tools.metrics.inc_suggestions(len(streamed))

    if tools.ctx.is_authenticated and streamed:
        created_at = utcnow()
        await tools.suggestions.save_suggestions(
            [
                Suggestion(
                    **s.model_dump(),
                    document_created_at=document.created_at,
                    user_id=tools.ctx.user_id,
                    created_at=created_at,
                )
                for s in streamed
            ]
        )
        logger.info("Saved %d suggestions for document %s", len(streamed), document.id)

    return {
        "id": args.documentId,
        "title": document.title,
        "kind": document.kind.value,
        "message": "Suggestions have been added to the document",
    }
