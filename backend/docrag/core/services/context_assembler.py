from __future__ import annotations
from typing import Dict, List, Sequence
import logging

from docrag.core.entities import AssembledContext, ContextPiece, SearchResult

logger = logging.getLogger("docrag.context")

TEXT_INPUT_TAG = "[TEXT INPUT]"
ELLIPSIS = "..."
PIECE_SEPARATOR = "\n\n"

MAX_PER_DOCUMENT = 5
EXTRA_PER_DOCUMENT = 2
SMALL_GROUP = 3


def truncate(text: str, limit: int) -> str:
    return text[:limit] + ELLIPSIS if len(text) > limit else text


def group_by_document(results: Sequence[SearchResult]) -> List[List[SearchResult]]:
    """Group results by document_id, groups ordered by their earliest member's rank."""
    groups: Dict[str, List[SearchResult]] = {}
    for r in results:
        groups.setdefault(r.chunk.document_id, []).append(r)
    # dicts keep insertion order, i.e. first-appearance rank
    return list(groups.values())


def select_adjacent(group: Sequence[SearchResult]) -> List[SearchResult]:
    """
    Pick a continuity-preserving subset of one document's chunks.

    Chunks are ordered by chunk_index; the lowest index is the anchor.
    Its neighbours (index +1, then index -1 placed before it) are added
    when present, followed by up to two more chunks in rank order.
    Adjacency is index arithmetic, so gaps in chunk_index are fine.
    """
    ordered = sorted(group, key=lambda r: r.chunk.chunk_index)
    if len(ordered) <= SMALL_GROUP:
        return ordered

    anchor = ordered[0]
    idx = anchor.chunk.chunk_index
    selected = [anchor]

    nxt = next((r for r in ordered if r.chunk.chunk_index == idx + 1), None)
    if nxt is not None:
        selected.append(nxt)
    prev = next((r for r in ordered if r.chunk.chunk_index == idx - 1), None)
    if prev is not None:
        selected.insert(0, prev)

    chosen = {r.chunk_id for r in selected}
    remaining = [r for r in group if r.chunk_id not in chosen]
    selected.extend(remaining[:EXTRA_PER_DOCUMENT])
    return selected[:MAX_PER_DOCUMENT]


class ContextAssembler:
    """Packs merged search results into one budgeted context string.

    Text input goes first, then documents in order of first appearance,
    each contributing a handful of neighbouring chunks. A piece that does
    not fit is skipped; packing stops once the budget is reached.
    """

    def __init__(self, max_chars: int = 12000, max_chunk_chars: int = 1200, piece_overhead: int = 50):
        self.max_chars = max_chars
        self.max_chunk_chars = max_chunk_chars
        self.piece_overhead = piece_overhead

    def format_piece(self, result: SearchResult) -> str:
        chunk = result.chunk
        content = truncate(chunk.content.strip(), self.max_chunk_chars)
        if chunk.is_text_input:
            return f"{TEXT_INPUT_TAG} {content}"
        return f"[{chunk.file_name}] [Chunk {chunk.chunk_index + 1}] {content}"

    def assemble(self, results: Sequence[SearchResult]) -> AssembledContext:
        if not results:
            return AssembledContext(text="", chars_used=0)

        text_inputs = [r for r in results if r.chunk.is_text_input]
        documents = [r for r in results if not r.chunk.is_text_input]

        ordered: List[SearchResult] = list(text_inputs)
        for group in group_by_document(documents):
            ordered.extend(select_adjacent(group))

        pieces: List[ContextPiece] = []
        packed: set[str] = set()
        total = 0
        for result in ordered:
            if total >= self.max_chars:
                break
            if result.chunk_id in packed or not result.chunk.content.strip():
                continue
            text = self.format_piece(result)
            cost = len(text) + self.piece_overhead
            if total + cost > self.max_chars:
                continue
            pieces.append(ContextPiece(chunk_id=result.chunk_id, text=text, cost=cost))
            packed.add(result.chunk_id)
            total += cost

        text_input_ids = {r.chunk_id for r in text_inputs}
        context = PIECE_SEPARATOR.join(p.text for p in pieces)
        logger.info(
            f"📝 Built context with {len(context)} characters from {len(pieces)} pieces "
            f"({total}/{self.max_chars} budget used)"
        )
        return AssembledContext(
            text=context,
            chars_used=total,
            pieces=pieces,
            text_input_count=sum(1 for p in pieces if p.chunk_id in text_input_ids),
        )
