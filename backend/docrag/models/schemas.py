from __future__ import annotations
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from docrag.core import entities


class ChatMessageIn(BaseModel):
    role: Literal["system", "user", "assistant"] = "user"
    content: str

    def to_entity(self) -> entities.ChatMessage:
        return entities.ChatMessage(role=self.role, content=self.content)


class QueryRequest(BaseModel):
    message: str = Field(..., description="User question")
    storage_id: str = Field(..., min_length=1, description="Session or account scope to search")
    chat_history: List[ChatMessageIn] = Field(default_factory=list)


class CitationOut(BaseModel):
    id: str
    document_id: str
    document_name: str
    document_type: str
    source_url: Optional[str] = None
    chunk_id: str
    chunk_index: int
    content: str
    full_content: str
    relevance_score: float
    vector_score: float
    uploaded_at: str
    is_text_input: bool
    author: Optional[str] = None
    published_at: Optional[str] = None

    @classmethod
    def from_entity(cls, c: entities.Citation) -> "CitationOut":
        return cls(
            id=c.id,
            document_id=c.document_id,
            document_name=c.document_name,
            document_type=c.document_type,
            source_url=c.source_url,
            chunk_id=c.chunk_id,
            chunk_index=c.chunk_index,
            content=c.content_preview,
            full_content=c.full_content,
            relevance_score=c.relevance_score,
            vector_score=c.vector_score,
            uploaded_at=c.uploaded_at,
            is_text_input=c.is_text_input,
            author=c.author,
            published_at=c.published_at,
        )


class QueryResponse(BaseModel):
    response: str
    citations: List[CitationOut]
    context: bool
    search_results: int = 0
    text_input_chunks: int = 0


class ChunkIn(BaseModel):
    chunk_id: str
    document_id: str
    chunk_index: int = Field(..., ge=0)
    content: str
    start_char: int = Field(0, ge=0)
    end_char: int = Field(0, ge=0)
    file_name: str = ""
    file_type: str = ""
    source_url: Optional[str] = None
    uploaded_at: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[str] = None

    def to_entity(self) -> entities.Chunk:
        return entities.Chunk(**self.model_dump())


class UpsertChunksRequest(BaseModel):
    storage_id: str = Field(..., min_length=1)
    chunks: List[ChunkIn]


class UpsertChunksResponse(BaseModel):
    storage_id: str
    upserted: int


class DeleteDocumentResponse(BaseModel):
    document_id: str
    removed: int
