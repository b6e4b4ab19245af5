from __future__ import annotations
from typing import List, Sequence
import logging
import re

from docrag.core.entities import ChatMessage
from docrag.core.ports.completion import ICompletionService

logger = logging.getLogger("docrag.expander")

HISTORY_MESSAGES = 3
HISTORY_CHARS = 300

_LIST_MARKER = re.compile(r"^(?:\d+[.)]|[-*•])\s+")

EXPANSION_PROMPT = """Given the user query "{query}" and recent conversation context: "{recent}"

Generate 2-3 alternative search queries that capture different semantic angles of the same question. Focus on:
1. Synonyms and alternative phrasings
2. More specific technical terms
3. Broader conceptual searches

Return only the alternative queries, one per line, without numbering or explanation."""


def recent_context(history: Sequence[ChatMessage]) -> str:
    """Last few history messages joined and clipped for the expansion prompt."""
    recent = history[-HISTORY_MESSAGES:] if history else []
    return " ".join(m.content for m in recent)[:HISTORY_CHARS]


def parse_variants(raw: str, query: str, limit: int) -> List[str]:
    if not isinstance(raw, str):
        raise TypeError(f"completion returned {type(raw).__name__}, expected str")
    seen = {query.strip().lower()}
    variants: List[str] = []
    for line in raw.split("\n"):
        line = _LIST_MARKER.sub("", line.strip()).strip()
        if not line or line.lower() in seen:
            continue
        seen.add(line.lower())
        variants.append(line)
    return variants[:limit]


class QueryExpander:
    """Derives alternate phrasings of a query with one completion call.

    Never raises: any failure degrades to an empty list so retrieval
    proceeds with the original query alone.
    """

    def __init__(self, completion: ICompletionService, max_variants: int = 3):
        self.completion = completion
        self.max_variants = max_variants

    def expand(self, query: str, history: Sequence[ChatMessage] = ()) -> List[str]:
        prompt = EXPANSION_PROMPT.format(query=query, recent=recent_context(history))
        try:
            raw = self.completion.complete(prompt)
            variants = parse_variants(raw, query, self.max_variants)
        except Exception as e:
            logger.warning(f"⚠️ Query variation generation failed: {e}")
            return []

        logger.info(f"🔍 Generated {len(variants)} query variations for: {query!r}")
        return variants
