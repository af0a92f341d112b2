from __future__ import annotations

from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

QueryModeName = Literal["both", "knowledge", "memory"]


# Knowledge
class DocumentMetadata(BaseModel):
    """Metadata supplied by the uploader."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str | None = None
    source: str | None = None
    uploaded_at: str | None = Field(default=None, alias="uploadedAt")


class IngestRequest(BaseModel):
    content: str = Field(..., description="Raw document text")
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    confluence: bool = Field(default=False, description="Treat the content as a Confluence page")


class IngestResponse(BaseModel):
    success: bool
    message: str
    ids: List[str] = Field(default_factory=list)


# Retrieval
class QueryRequest(BaseModel):
    query: str = Field(default="", description="Text to search for")
    limit: int = Field(default=5, ge=1, le=50)
    mode: QueryModeName = Field(default="both")


class ContextItemModel(BaseModel):
    content: str
    metadata: Dict[str, object]
    origin: Literal["memory", "knowledge"]


class QueryResponse(BaseModel):
    results: List[ContextItemModel]
    context_text: str


class HistoryEntryModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    is_user: bool = Field(..., alias="isUser")
    timestamp: str


class HistoryResponse(BaseModel):
    entries: List[HistoryEntryModel]


# Chat
class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, description="User message")
    mode: QueryModeName = Field(default="both")
    history: List[ChatMessage] | None = Field(
        default=None,
        description="Prior turns; defaults to the stored conversation history",
    )


class NextActionRequest(BaseModel):
    history: List[ChatMessage] | None = None


class ChatResponse(BaseModel):
    reply: str
    ok: bool
    context: List[ContextItemModel]
    context_text: str


# Admin
class ResetResponse(BaseModel):
    success: bool


__all__ = [
    "DocumentMetadata",
    "IngestRequest",
    "IngestResponse",
    "QueryRequest",
    "ContextItemModel",
    "QueryResponse",
    "HistoryEntryModel",
    "HistoryResponse",
    "ChatMessage",
    "ChatRequest",
    "NextActionRequest",
    "ChatResponse",
    "ResetResponse",
]
