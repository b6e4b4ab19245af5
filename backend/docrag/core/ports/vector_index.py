from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable, List
from docrag.core.entities import Chunk, SearchResult


class IVectorIndex(ABC):
    @abstractmethod
    def search(self, query_text: str, storage_id: str, k: int) -> List[SearchResult]:
        """Return up to k results for storage_id only, by descending similarity."""
        ...

    @abstractmethod
    def upsert_chunks(self, storage_id: str, chunks: Iterable[Chunk]) -> int: ...

    @abstractmethod
    def delete_document(self, storage_id: str, document_id: str) -> int: ...
