from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List


class IEmbeddingModel(ABC):
    """Turns query/chunk text into vectors for the index adapters."""

    dim: int

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        ...

    @abstractmethod
    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        ...
