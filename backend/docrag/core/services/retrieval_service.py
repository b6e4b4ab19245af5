from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Iterable, List, Sequence, Tuple
import logging
import time

from docrag.core.entities import SearchResult
from docrag.core.errors import RetrievalError
from docrag.core.ports.vector_index import IVectorIndex

logger = logging.getLogger("docrag.retriever")


def merge_results(
    primary: Sequence[SearchResult],
    variant_results: Iterable[Sequence[SearchResult]],
    max_candidates: int = 25,
) -> List[SearchResult]:
    """Dedup primary + variant results by chunk_id, first occurrence wins.

    Order is first-occurrence order, not score. The cap is applied only
    after the whole list has been merged.
    """
    merged: List[SearchResult] = []
    seen: set[str] = set()
    for batch in (primary, *variant_results):
        for result in batch:
            if result.chunk_id in seen:
                continue
            seen.add(result.chunk_id)
            merged.append(result)
    return merged[:max_candidates]


class RetrievalService:
    """Fans one query plus its variants out to the vector index in parallel."""

    def __init__(
        self,
        index: IVectorIndex,
        primary_k: int = 20,
        variant_k: int = 10,
        timeout: float = 30.0,
    ):
        self.index = index
        self.primary_k = primary_k
        self.variant_k = variant_k
        self.timeout = timeout

    def search(self, query_text: str, storage_id: str, k: int) -> List[SearchResult]:
        return self.index.search(query_text, storage_id, k)

    def retrieve_all(
        self, query: str, variants: Sequence[str], storage_id: str
    ) -> Tuple[List[SearchResult], List[List[SearchResult]]]:
        """
        Run the primary search and one search per variant concurrently.

        Returns (primary results, variant results in generation order).
        A failed or late variant yields []; a failed or late primary search
        raises RetrievalError. Searches still running when this returns are
        abandoned.
        """
        executor = ThreadPoolExecutor(max_workers=1 + len(variants), thread_name_prefix="rag_search")
        deadline = time.monotonic() + self.timeout
        try:
            primary_future = executor.submit(self.search, query, storage_id, self.primary_k)
            variant_futures = [
                executor.submit(self.search, v, storage_id, self.variant_k) for v in variants
            ]

            try:
                primary = primary_future.result(timeout=self.timeout)
            except FutureTimeout as e:
                raise RetrievalError(f"Primary search timed out after {self.timeout:.1f}s") from e
            except RetrievalError:
                raise
            except Exception as e:
                raise RetrievalError(f"Primary search failed: {e}") from e

            variant_results: List[List[SearchResult]] = []
            for variant, future in zip(variants, variant_futures):
                try:
                    variant_results.append(future.result(timeout=max(0.0, deadline - time.monotonic())))
                except FutureTimeout:
                    logger.warning(f"⚠️ Variant search abandoned after deadline: {variant!r}")
                    variant_results.append([])
                except Exception as e:
                    logger.warning(f"⚠️ Variant search failed for {variant!r}: {e}")
                    variant_results.append([])
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            "🔍 Primary search returned %d hits; variant hits: %s",
            len(primary), [len(r) for r in variant_results],
        )
        return primary, variant_results
