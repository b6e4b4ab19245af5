from __future__ import annotations
from typing import Iterator, List, Optional, Sequence, Tuple
import logging

from docrag.config import PipelineConfig
from docrag.core.entities import Answer, ChatMessage, RetrievalOutcome
from docrag.core.errors import CompletionError, DocRagError
from docrag.core.ports.completion import ICompletionService
from docrag.core.ports.vector_index import IVectorIndex
from docrag.core.services.citation_builder import CitationBuilder
from docrag.core.services.context_assembler import ContextAssembler
from docrag.core.services.prompts import NO_DOCUMENTS_REPLY, build_system_prompt, stream_options
from docrag.core.services.query_expander import QueryExpander
from docrag.core.services.retrieval_service import RetrievalService, merge_results

logger = logging.getLogger("docrag.qa")

ANSWER_HISTORY = 6
STREAM_HISTORY = 5

EMPTY_OUTCOME = RetrievalOutcome(context_text="", citations=[], used_context=False, result_count=0)


class QAService:
    """
    Retrieval-augmented QA pipeline.

    expand -> parallel search -> merge -> assemble context + citations,
    then either a single completion or a token stream. Expansion and
    variant-search failures degrade silently; a failed primary search or
    completion call propagates.
    """

    def __init__(
        self,
        retrieval: RetrievalService,
        assembler: ContextAssembler,
        citations: CitationBuilder,
        completion: ICompletionService,
        expander: Optional[QueryExpander] = None,
        max_candidates: int = 25,
    ):
        self.retrieval = retrieval
        self.assembler = assembler
        self.citations = citations
        self.completion = completion
        self.expander = expander
        self.max_candidates = max_candidates

    @classmethod
    def from_config(
        cls,
        index: IVectorIndex,
        completion: ICompletionService,
        config: PipelineConfig,
        expansion: Optional[ICompletionService] = None,
    ) -> "QAService":
        expander = None
        if config.expand_queries and config.max_variants > 0:
            expander = QueryExpander(expansion or completion, max_variants=config.max_variants)
        return cls(
            retrieval=RetrievalService(
                index,
                primary_k=config.primary_k,
                variant_k=config.variant_k,
                timeout=config.search_timeout,
            ),
            assembler=ContextAssembler(
                max_chars=config.max_context_chars,
                max_chunk_chars=config.max_chunk_chars,
                piece_overhead=config.piece_overhead,
            ),
            citations=CitationBuilder(max_citations=config.max_citations, preview_chars=config.preview_chars),
            completion=completion,
            expander=expander,
            max_candidates=config.max_candidates,
        )

    # ------------------------------------------------------
    # 🔎 Retrieval + context assembly
    # ------------------------------------------------------
    def build_context(
        self, query: str, storage_id: str, history: Sequence[ChatMessage] = ()
    ) -> RetrievalOutcome:
        variants: List[str] = self.expander.expand(query, history) if self.expander else []
        primary, variant_results = self.retrieval.retrieve_all(query, variants, storage_id)
        results = merge_results(primary, variant_results, self.max_candidates)

        if not results:
            logger.warning(f"⚠️ No relevant chunks for storage {storage_id!r}; returning empty context.")
            return EMPTY_OUTCOME

        assembled = self.assembler.assemble(results)
        citations = self.citations.build(results)
        logger.info(
            f"📄 {len(results)} merged results | {len(assembled.pieces)} packed | {len(citations)} citations"
        )
        return RetrievalOutcome(
            context_text=assembled.text,
            citations=citations,
            used_context=True,
            result_count=len(results),
            text_input_chunks=sum(1 for r in results if r.chunk.is_text_input),
            variants=variants,
            chars_used=assembled.chars_used,
        )

    # ------------------------------------------------------
    # 🧠 Answer generation
    # ------------------------------------------------------
    def answer(self, query: str, storage_id: str, history: Sequence[ChatMessage] = ()) -> Answer:
        outcome = self.build_context(query, storage_id, history)
        if not outcome.used_context:
            return Answer(text=NO_DOCUMENTS_REPLY, outcome=outcome)

        messages = [*history[-ANSWER_HISTORY:], ChatMessage(role="user", content=query)]
        try:
            text = self.completion.complete_chat(messages, build_system_prompt(outcome.context_text))
        except DocRagError:
            raise
        except Exception as e:
            raise CompletionError(f"Answer generation failed: {e}") from e

        logger.info(f"✅ Generated response with {len(outcome.citations)} citations")
        return Answer(text=(text or "").strip(), outcome=outcome)

    def stream(
        self, query: str, storage_id: str, history: Sequence[ChatMessage] = ()
    ) -> Tuple[RetrievalOutcome, Iterator[str]]:
        outcome = self.build_context(query, storage_id, history)
        if not outcome.used_context:
            return outcome, iter([NO_DOCUMENTS_REPLY])

        messages = [*history[-STREAM_HISTORY:], ChatMessage(role="user", content=query)]
        options = stream_options(query)
        logger.info(f"🎯 Detected task type: {options['task_type']} for query: {query[:50]!r}")
        try:
            tokens = self.completion.stream_chat(messages, outcome.context_text, options)
        except DocRagError:
            raise
        except Exception as e:
            raise CompletionError(f"Streaming failed to start: {e}") from e
        return outcome, _guard_stream(tokens)


def _guard_stream(tokens: Iterator[str]) -> Iterator[str]:
    try:
        yield from tokens
    except DocRagError:
        raise
    except Exception as e:
        raise CompletionError(f"Streaming interrupted: {e}") from e
