from __future__ import annotations
from typing import List
import hashlib, math, re
from docrag.core.ports.embeddings import IEmbeddingModel

_WORD = re.compile(r"\w+", re.U)


class HashEmbedding(IEmbeddingModel):
    """
    Deterministic feature-hashing embedding for offline / test mode.
    Each lowercased token lands in a signed bucket, so texts that share
    words get a positive cosine similarity. Not semantic.
    """

    def __init__(self, dim: int = 768):
        self.dim = dim

    def _bucket(self, token: str) -> tuple[int, float]:
        h = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        x = int.from_bytes(h, "little")
        return x % self.dim, (1.0 if (x >> 63) & 1 else -1.0)

    def _hash_vec(self, text: str) -> List[float]:
        vec = [0.0] * self.dim
        for token in _WORD.findall(text.lower()):
            slot, sign = self._bucket(token)
            vec[slot] += sign
        norm = math.sqrt(sum(v * v for v in vec))
        if norm == 0.0:
            return []
        return [v / norm for v in vec]

    def embed(self, text: str) -> List[float]:
        return self._hash_vec(text or "")

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [self._hash_vec(t or "") for t in texts]
