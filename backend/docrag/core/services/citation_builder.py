from __future__ import annotations
from datetime import datetime, timezone
from typing import List, Sequence

from docrag.core.entities import Citation, SearchResult

TOP_RELEVANCE = 0.95
RELEVANCE_STEP = 0.1
MIN_RELEVANCE = 0.1


def decayed_relevance(rank: int) -> float:
    return max(MIN_RELEVANCE, round(TOP_RELEVANCE - rank * RELEVANCE_STEP, 4))


class CitationBuilder:
    """Builds the citation list shown next to an answer.

    Works from the merged result list, not from what made it into the
    packed context, so citations stay stable when the budget is tight.
    """

    def __init__(self, max_citations: int = 8, preview_chars: int = 200):
        self.max_citations = max_citations
        self.preview_chars = preview_chars

    def _preview(self, content: str) -> str:
        if len(content) > self.preview_chars:
            return content[: self.preview_chars] + "..."
        return content

    def build(self, results: Sequence[SearchResult]) -> List[Citation]:
        citations: List[Citation] = []
        seen: set[str] = set()
        for result in results[: self.max_citations]:
            chunk = result.chunk
            if chunk.chunk_id in seen:
                continue
            seen.add(chunk.chunk_id)
            citations.append(
                Citation(
                    id=f"citation-{chunk.chunk_id}",
                    document_id=chunk.document_id,
                    document_name=chunk.file_name or "Unknown Document",
                    document_type=chunk.file_type or "text/plain",
                    source_url=chunk.source_url,
                    chunk_id=chunk.chunk_id,
                    chunk_index=chunk.chunk_index or 0,
                    content_preview=self._preview(chunk.content),
                    full_content=chunk.content,
                    relevance_score=decayed_relevance(len(citations)),
                    vector_score=float(result.score),
                    uploaded_at=chunk.uploaded_at or datetime.now(timezone.utc).isoformat(),
                    is_text_input=chunk.is_text_input,
                    author=chunk.author,
                    published_at=chunk.published_at,
                )
            )
        return citations
