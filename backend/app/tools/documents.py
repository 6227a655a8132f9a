"""createDocument and updateDocument tools."""

import logging
import uuid
from typing import Any

from pydantic import BaseModel, Field

from backend.app.models.common import ArtifactKind
from backend.app.models.events import StreamEvent, StreamEventType
from backend.app.tools.context import ToolContext

logger = logging.getLogger(__name__)


class CreateDocumentArgs(BaseModel):
    title: str
    kind: ArtifactKind


class UpdateDocumentArgs(BaseModel):
    id: str = Field(..., description="The ID of the document to update")
    description: str = Field(..., description="The description of changes that need to be made")


def parse_document_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


async def create_document(tools: ToolContext, args: CreateDocumentArgs) -> dict[str, Any]:
    """Create a document of the given kind and stream its draft.

    Emits kind, id, title and an empty clear before the handler streams its
    content, then finish.

    Raises:
        DocumentHandlerNotFoundError: If no handler exists for the kind
    """
    document_id = uuid.uuid4()
    stream = tools.data_stream

    await stream.write(StreamEvent.of(StreamEventType.kind, args.kind.value))
    await stream.write(StreamEvent.of(StreamEventType.id, str(document_id)))
    await stream.write(StreamEvent.of(StreamEventType.title, args.title))
    await stream.write(StreamEvent.of(StreamEventType.clear, ""))

    handler = tools.handlers.get(args.kind)
    await handler.on_create_document(id=document_id, title=args.title, data_stream=stream, ctx=tools.ctx)

    await stream.write(StreamEvent.of(StreamEventType.finish, ""))

    return {
        "id": str(document_id),
        "title": args.title,
        "kind": args.kind.value,
        "content": "A document was created and is now visible to the user.",
    }


async def update_document(tools: ToolContext, args: UpdateDocumentArgs) -> dict[str, Any]:
    """Revise the latest version of a document.

    Returns:
        Summary of the update, or `{"error": "Document not found"}`
    """
    document_id = parse_document_id(args.id)
    document = await tools.documents.get_document_by_id(document_id) if document_id else None
    if document is None:
        logger.info("updateDocument: document %s not found", args.id)
        return {"error": "Document not found"}

    stream = tools.data_stream
    # Update streams reuse the open panel, so clear carries the current title
    await stream.write(StreamEvent.of(StreamEventType.clear, document.title))

    handler = tools.handlers.get(document.kind)
    await handler.on_update_document(
        document=document, description=args.description, data_stream=stream, ctx=tools.ctx
    )

    await stream.write(StreamEvent.of(StreamEventType.finish, ""))

    return {
        "id": args.id,
        "title": document.title,
        "kind": document.kind.value,
        "content": "The document has been updated successfully.",
    }
