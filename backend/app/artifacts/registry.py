"""Document handlers, one per artifact kind.

A strategy produces content for its kind, streaming progress events while it
works. `create_document_handler` wraps a strategy so that the content it
returns is saved as a new document version whenever the request carries a
user. Callers never persist directly.
"""

import time
from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from backend.app.artifacts.code import CodeStrategy
from backend.app.artifacts.image import ImageStrategy
from backend.app.artifacts.sheet import SheetStrategy
from backend.app.artifacts.text import TextStrategy
from backend.app.db.context import RequestContext
from backend.app.db.repositories import DocumentStore
from backend.app.llm.client import LanguageModelService
from backend.app.models.common import ArtifactKind
from backend.app.models.documents import Document
from backend.app.streaming.channel import DataStreamWriter
from backend.app.utils.logging import StructuredOperationLogger
from backend.app.utils.metrics import PrometheusDocumentMetrics


class DocumentHandlerNotFoundError(LookupError):
    """No handler registered for an artifact kind."""

    pass


class ArtifactStrategy(Protocol):
    """Content producer for one artifact kind."""

    kind: ArtifactKind

    async def on_create(self, *, title: str, data_stream: DataStreamWriter) -> str:
        """Produce the first draft for a new document."""
        ...

    async def on_update(self, *, document: Document, description: str, data_stream: DataStreamWriter) -> str:
        """Produce revised content for an existing document."""
        ...


class DocumentHandler:
    """A strategy wrapped with persistence, logging and metrics."""

    def __init__(
        self,
        strategy: ArtifactStrategy,
        store: DocumentStore,
        metrics: PrometheusDocumentMetrics | None = None,
        operation_logger: StructuredOperationLogger | None = None,
    ) -> None:
        self.strategy = strategy
        self.store = store
        self.metrics = metrics or PrometheusDocumentMetrics()
        self.operation_logger = operation_logger or StructuredOperationLogger()

    @property
    def kind(self) -> ArtifactKind:
        return self.strategy.kind

    async def on_create_document(
        self,
        *,
        id: UUID,
        title: str,
        data_stream: DataStreamWriter,
        ctx: RequestContext,
    ) -> str:
        """Create content for a new document and save it when a user is present.

        Args:
            id: Document ID chosen by the caller
            title: Document title, also the generation prompt
            data_stream: Stream receiving progress events
            ctx: Request context

        Returns:
            The generated content
        """
        start = time.perf_counter()
        try:
            content = await self.strategy.on_create(title=title, data_stream=data_stream)
            await self._save(id=id, title=title, content=content, ctx=ctx)
        except Exception as e:
            self._record("create", id, start, outcome="error", error_reason=str(e))
            raise
        self._record("create", id, start, outcome="success")
        return content

    async def on_update_document(
        self,
        *,
        document: Document,
        description: str,
        data_stream: DataStreamWriter,
        ctx: RequestContext,
    ) -> str:
        """Revise a document and save the result as its next version."""
        start = time.perf_counter()
        try:
            content = await self.strategy.on_update(
                document=document, description=description, data_stream=data_stream
            )
            await self._save(id=document.id, title=document.title, content=content, ctx=ctx)
        except Exception as e:
            self._record("update", document.id, start, outcome="error", error_reason=str(e))
            raise
        self._record("update", document.id, start, outcome="success")
        return content

    async def _save(self, *, id: UUID, title: str, content: str, ctx: RequestContext) -> None:
        if ctx.user_id is None:
            return
        await self.store.save_document(id=id, title=title, kind=self.kind, content=content, user_id=ctx.user_id)
        self.metrics.inc_version_saved(self.kind.value)

    def _record(
        self,
        operation: str,
        document_id: UUID,
        start: float,
        *,
        outcome: str,
        error_reason: str | None = None,
    ) -> None:
        latency_ms = (time.perf_counter() - start) * 1000
        self.metrics.record_latency(self.kind.value, operation, outcome, latency_ms)
        self.operation_logger.log_operation(
            trace_id=f"doc-{document_id}",
            operation=operation,
            outcome=outcome,
            latency_ms=latency_ms,
            kind=self.kind.value,
            document_id=str(document_id),
            error_reason=error_reason,
        )


def create_document_handler(
    strategy: ArtifactStrategy,
    store: DocumentStore,
    metrics: PrometheusDocumentMetrics | None = None,
) -> DocumentHandler:
    return DocumentHandler(strategy, store, metrics=metrics)


class DocumentHandlerRegistry:
    """Exactly one handler per artifact kind.

    Raises:
        DocumentHandlerNotFoundError: At construction when a kind is missing,
            and from `get` for anything that is not a registered kind.
    """

    def __init__(self, handlers: Iterable[DocumentHandler]) -> None:
        self._handlers: dict[ArtifactKind, DocumentHandler] = {}
        for handler in handlers:
            if handler.kind in self._handlers:
                raise ValueError(f"Duplicate document handler for kind: {handler.kind.value}")
            self._handlers[handler.kind] = handler

        missing = [kind.value for kind in ArtifactKind if kind not in self._handlers]
        if missing:
            raise DocumentHandlerNotFoundError(f"No document handler found for kind: {', '.join(missing)}")

    def get(self, kind: ArtifactKind | str) -> DocumentHandler:
        try:
            return self._handlers[ArtifactKind(kind)]
        except (KeyError, ValueError):
            raise DocumentHandlerNotFoundError(f"No document handler found for kind: {kind}") from None

    @property
    def kinds(self) -> list[ArtifactKind]:
        return list(self._handlers)


def build_document_handler_registry(
    llm: LanguageModelService,
    store: DocumentStore,
    metrics: PrometheusDocumentMetrics | None = None,
) -> DocumentHandlerRegistry:
    """Registry with the built-in strategy for every artifact kind."""
    strategies: list[ArtifactStrategy] = [
        TextStrategy(llm),
        CodeStrategy(llm),
        ImageStrategy(llm),
        SheetStrategy(llm),
    ]
    return DocumentHandlerRegistry(create_document_handler(s, store, metrics) for s in strategies)
