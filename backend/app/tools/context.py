"""What an assistant tool can reach while it runs."""

from dataclasses import dataclass

import httpx

from backend.app.artifacts.registry import DocumentHandlerRegistry
from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.db.repositories import DocumentStore, SuggestionStore
from backend.app.llm.client import LanguageModelService
from backend.app.streaming.channel import DataStreamWriter
from backend.app.utils.metrics import PrometheusDocumentMetrics


@dataclass
class ToolContext:
    """Collaborators shared by the tools of one chat turn."""

    ctx: RequestContext
    data_stream: DataStreamWriter
    llm: LanguageModelService
    documents: DocumentStore
    suggestions: SuggestionStore
    handlers: DocumentHandlerRegistry
    settings: Settings
    http_client: httpx.AsyncClient | None = None
    metrics: PrometheusDocumentMetrics | None = None
