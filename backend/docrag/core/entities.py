from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

TEXT_INPUT_FILE_NAME = "text-input.txt"


@dataclass(frozen=True)
class Chunk:
    chunk_id: str
    document_id: str
    chunk_index: int
    content: str
    start_char: int = 0
    end_char: int = 0
    file_name: str = ""
    file_type: str = ""
    source_url: Optional[str] = None
    uploaded_at: Optional[str] = None  # ISO-8601
    author: Optional[str] = None
    published_at: Optional[str] = None

    @property
    def is_text_input(self) -> bool:
        return self.file_name == TEXT_INPUT_FILE_NAME


@dataclass(frozen=True)
class SearchResult:
    chunk: Chunk
    score: float

    @property
    def chunk_id(self) -> str:
        return self.chunk.chunk_id


@dataclass(frozen=True)
class ChatMessage:
    role: str  # system | user | assistant
    content: str


@dataclass(frozen=True)
class ContextPiece:
    chunk_id: str
    text: str
    cost: int  # len(text) + formatting overhead


@dataclass(frozen=True)
class AssembledContext:
    text: str
    chars_used: int
    pieces: List[ContextPiece] = field(default_factory=list)
    text_input_count: int = 0


@dataclass(frozen=True)
class Citation:
    id: str
    document_id: str
    document_name: str
    document_type: str
    source_url: Optional[str]
    chunk_id: str
    chunk_index: int
    content_preview: str
    full_content: str
    relevance_score: float
    vector_score: float
    uploaded_at: str
    is_text_input: bool
    author: Optional[str] = None
    published_at: Optional[str] = None


@dataclass(frozen=True)
class RetrievalOutcome:
    context_text: str
    citations: List[Citation]
    used_context: bool
    result_count: int
    text_input_chunks: int = 0
    variants: List[str] = field(default_factory=list)
    chars_used: int = 0


@dataclass(frozen=True)
class Answer:
    text: str
    outcome: RetrievalOutcome
