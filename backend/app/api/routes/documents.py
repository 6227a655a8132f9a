"""Document version endpoints."""

import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from backend.app.api.auth import get_current_context, require_owner
from backend.app.api.dependencies import get_document_store, get_metrics
from backend.app.db.context import RequestContext
from backend.app.db.repositories import DocumentStore
from backend.app.models.common import ArtifactKind
from backend.app.models.documents import Document
from backend.app.utils.metrics import PrometheusDocumentMetrics

router = APIRouter(prefix="/document", tags=["documents"])


class SaveDocumentRequest(BaseModel):
    """Request body for POST /document."""

    title: str
    kind: ArtifactKind = ArtifactKind.text
    content: str | None = None


@router.get("")
async def get_document_versions(
    id: Annotated[uuid.UUID, Query()],
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
) -> list[Document]:
    """All versions of a document, oldest first.

    Raises:
        HTTPException: 404 if the document has no versions, 403 if it
            belongs to another user
    """
    versions = await documents.get_documents_by_id(id)
    if not versions:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    require_owner(versions[0].user_id, ctx)
    return versions


@router.post("")
async def save_document(
    id: Annotated[uuid.UUID, Query()],
    body: SaveDocumentRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
    metrics: Annotated[PrometheusDocumentMetrics, Depends(get_metrics)],
) -> Document:
    """Save editor content as the next version of a document."""
    if ctx.user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    current = await documents.get_document_by_id(id)
    if current is not None:
        require_owner(current.user_id, ctx)

    document = await documents.save_document(
        id=id, title=body.title, kind=body.kind, content=body.content, user_id=ctx.user_id
    )
    metrics.inc_version_saved(body.kind.value)
    return document


@router.delete("")
async def delete_later_versions(
    id: Annotated[uuid.UUID, Query()],
    timestamp: Annotated[datetime, Query()],
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
) -> list[Document]:
    """Delete versions created after `timestamp`; returns the deleted versions."""
    current = await documents.get_document_by_id(id)
    if current is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    require_owner(current.user_id, ctx)
    return await documents.delete_documents_after(id, timestamp)
