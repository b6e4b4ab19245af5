"""
Shared fixtures and fakes for the QA pipeline tests.

Provides: in-process fakes for the vector-index and completion ports,
plus a small factory for search results.
"""

import threading
import time
from typing import Dict, Iterator, List, Optional

import pytest

from docrag.core.entities import ChatMessage, Chunk, SearchResult
from docrag.core.ports.completion import ICompletionService
from docrag.core.ports.vector_index import IVectorIndex


def make_result(
    chunk_id: str,
    document_id: str = "doc-1",
    chunk_index: int = 0,
    content: Optional[str] = None,
    file_name: str = "report.pdf",
    score: float = 0.9,
    **extra,
) -> SearchResult:
    """Build a SearchResult with sensible defaults."""
    text = content if content is not None else f"content of {chunk_id}"
    chunk = Chunk(
        chunk_id=chunk_id,
        document_id=document_id,
        chunk_index=chunk_index,
        content=text,
        start_char=chunk_index * 100,
        end_char=chunk_index * 100 + len(text),
        file_name=file_name,
        file_type="application/pdf",
        uploaded_at="2025-01-01T00:00:00+00:00",
        **extra,
    )
    return SearchResult(chunk=chunk, score=score)


class FakeIndex(IVectorIndex):
    """Vector index returning canned results per query text."""

    def __init__(
        self,
        responses: Optional[Dict[str, List[SearchResult]]] = None,
        failures: Optional[Dict[str, Exception]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.responses = responses or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def search(self, query_text, storage_id, k):
        with self._lock:
            self.calls.append((query_text, storage_id, k))
        if query_text in self.delays:
            time.sleep(self.delays[query_text])
        if query_text in self.failures:
            raise self.failures[query_text]
        return list(self.responses.get(query_text, []))[:k]

    def upsert_chunks(self, storage_id, chunks):
        return len(list(chunks))

    def delete_document(self, storage_id, document_id):
        return 0


class FakeCompletion(ICompletionService):
    """Completion service with scripted outputs and call recording."""

    def __init__(
        self,
        expansion: str = "",
        answer: str = "An answer.",
        tokens: Optional[List[str]] = None,
        expansion_error: Optional[Exception] = None,
        answer_error: Optional[Exception] = None,
    ):
        self.expansion = expansion
        self.answer = answer
        self.tokens = tokens if tokens is not None else ["An ", "answer."]
        self.expansion_error = expansion_error
        self.answer_error = answer_error
        self.prompts: List[str] = []
        self.chat_calls: List[tuple] = []
        self.stream_calls: List[tuple] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.expansion_error:
            raise self.expansion_error
        return self.expansion

    def complete_chat(self, messages: List[ChatMessage], system_prompt: str, options=None) -> str:
        self.chat_calls.append((messages, system_prompt, options))
        if self.answer_error:
            raise self.answer_error
        return self.answer

    def stream_chat(self, messages: List[ChatMessage], context: str, options=None) -> Iterator[str]:
        self.stream_calls.append((messages, context, options))
        if self.answer_error:
            raise self.answer_error
        return iter(self.tokens)


@pytest.fixture
def fake_completion() -> FakeCompletion:
    return FakeCompletion()
