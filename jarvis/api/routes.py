from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from jarvis.config import settings
from jarvis.errors import InvalidInputError
from jarvis.models.schemas import (
    ChatRequest,
    ChatResponse,
    ContextItemModel,
    HistoryEntryModel,
    HistoryResponse,
    IngestRequest,
    IngestResponse,
    NextActionRequest,
    QueryRequest,
    QueryResponse,
    ResetResponse,
)
from jarvis.rag.pipeline import ChatResult, ChatService
from jarvis.rag.router import ContextItem, QueryMode, build_context_text
from jarvis.semantic.service import MemoryService

router = APIRouter()
logger = logging.getLogger(__name__)


def get_memory_service(request: Request) -> MemoryService:
    return request.app.state.memory_service


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def _context_models(items: list[ContextItem]) -> list[ContextItemModel]:
    return [ContextItemModel(content=i.content, metadata=i.metadata, origin=i.origin) for i in items]


def _chat_response(result: ChatResult) -> ChatResponse:
    return ChatResponse(
        reply=result.reply,
        ok=result.ok,
        context=_context_models(result.context),
        context_text=result.context_text,
    )


@router.post("/api/v1/knowledge", response_model=IngestResponse, summary="Ingest a document into the knowledge store")
async def ingest(request: IngestRequest, service: MemoryService = Depends(get_memory_service)) -> IngestResponse:
    metadata = request.metadata.model_dump(by_alias=True, exclude_none=True)
    logger.info("Ingest request", extra={"len": len(request.content), "title": metadata.get("title")})
    if request.confluence:
        result = await service.ingest_confluence_page(request.content, metadata)
    else:
        result = await service.ingest(request.content, metadata)
    return IngestResponse(**result.to_dict())


@router.post("/api/v1/query", response_model=QueryResponse, summary="Retrieve context from the stores")
async def query(request: QueryRequest, service: MemoryService = Depends(get_memory_service)) -> QueryResponse:
    items = await service.query(request.query, request.limit, QueryMode(request.mode))
    return QueryResponse(results=_context_models(items), context_text=build_context_text(items))


@router.get("/api/v1/history", response_model=HistoryResponse, summary="Recent conversation history")
async def history(
    limit: int = Query(default=settings.history_limit, ge=1, le=500),
    service: MemoryService = Depends(get_memory_service),
) -> HistoryResponse:
    entries = await service.get_conversation_history(limit)
    return HistoryResponse(entries=[HistoryEntryModel(**entry) for entry in entries])


@router.post("/api/v1/chat", response_model=ChatResponse, summary="Answer a chat message with retrieved context")
async def chat(request: ChatRequest, service: ChatService = Depends(get_chat_service)) -> ChatResponse:
    history_turns = [turn.model_dump() for turn in request.history] if request.history is not None else None
    try:
        result = await service.respond(request.message, mode=QueryMode(request.mode), history=history_turns)
    except InvalidInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _chat_response(result)


@router.post("/api/v1/next-action", response_model=ChatResponse, summary="Recommend the next best action")
async def next_action(
    request: NextActionRequest | None = None,
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    history_turns = None
    if request is not None and request.history is not None:
        history_turns = [turn.model_dump() for turn in request.history]
    return _chat_response(await service.next_action(history=history_turns))


@router.post("/admin/reset", response_model=ResetResponse, summary="Reset both stores to their seeded state")
async def reset(service: MemoryService = Depends(get_memory_service)) -> ResetResponse:
    logger.info("Reset requested")
    return ResetResponse(success=await service.clear_all_stores())


__all__ = ["router", "get_memory_service", "get_chat_service"]
