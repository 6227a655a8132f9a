"""FastAPI dependencies wiring stores, model client and handlers."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.artifacts.registry import DocumentHandlerRegistry, build_document_handler_registry
from backend.app.chat.turn import ChatTurnDeps
from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_session
from backend.app.db.repositories import ChatStore, DocumentStore, SuggestionStore
from backend.app.db.sql_repositories import SqlChatStore, SqlDocumentStore, SqlSuggestionStore
from backend.app.llm.client import LanguageModelService, get_llm_client
from backend.app.utils.metrics import PrometheusDocumentMetrics


async def get_document_store(session: Annotated[AsyncSession, Depends(get_session)]) -> DocumentStore:
    return SqlDocumentStore(session)


async def get_suggestion_store(session: Annotated[AsyncSession, Depends(get_session)]) -> SuggestionStore:
    return SqlSuggestionStore(session)


async def get_chat_store(session: Annotated[AsyncSession, Depends(get_session)]) -> ChatStore:
    return SqlChatStore(session)


def get_metrics() -> PrometheusDocumentMetrics:
    return PrometheusDocumentMetrics()


async def get_handler_registry(
    llm: Annotated[LanguageModelService, Depends(get_llm_client)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
    metrics: Annotated[PrometheusDocumentMetrics, Depends(get_metrics)],
) -> DocumentHandlerRegistry:
    return build_document_handler_registry(llm, documents, metrics)


async def get_chat_turn_deps(
    chats: Annotated[ChatStore, Depends(get_chat_store)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
    suggestions: Annotated[SuggestionStore, Depends(get_suggestion_store)],
    llm: Annotated[LanguageModelService, Depends(get_llm_client)],
    handlers: Annotated[DocumentHandlerRegistry, Depends(get_handler_registry)],
    settings: Annotated[Settings, Depends(get_settings)],
    metrics: Annotated[PrometheusDocumentMetrics, Depends(get_metrics)],
) -> ChatTurnDeps:
    return ChatTurnDeps(
        chats=chats,
        documents=documents,
        suggestions=suggestions,
        llm=llm,
        handlers=handlers,
        settings=settings,
        metrics=metrics,
    )
