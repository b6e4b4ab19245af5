from __future__ import annotations
from threading import Lock
from typing import Dict, Iterable, List
import logging
import numpy as np

from docrag.core.entities import Chunk, SearchResult
from docrag.core.ports.embeddings import IEmbeddingModel
from docrag.core.ports.vector_index import IVectorIndex

logger = logging.getLogger("docrag.index.memory")


class _Partition:
    """Chunks + L2-normalized embedding matrix for one storage scope."""

    def __init__(self) -> None:
        self.chunks: List[Chunk] = []
        self.mat: np.ndarray | None = None

    def rebuild(self, chunks: List[Chunk], rows: List[List[float]]) -> None:
        self.chunks = chunks
        if not rows:
            self.mat = None
            return
        mat = np.asarray(rows, dtype=np.float32)
        n = np.linalg.norm(mat, axis=1, keepdims=True)
        n[n == 0] = 1.0
        self.mat = mat / n


class InMemoryVectorIndex(IVectorIndex):
    """
    Cosine-similarity index kept in process memory (no database).
    Each storage_id gets its own partition, so a search can only ever see
    the chunks upserted under the same scope.
    """

    def __init__(self, embedder: IEmbeddingModel):
        self.embedder = embedder
        self._parts: Dict[str, _Partition] = {}
        self._vectors: Dict[str, Dict[str, List[float]]] = {}
        self._lock = Lock()

    def upsert_chunks(self, storage_id: str, chunks: Iterable[Chunk]) -> int:
        chunks = list(chunks)
        if not chunks:
            return 0
        embeddings = self.embedder.embed_batch([c.content for c in chunks])
        with self._lock:
            part = self._parts.setdefault(storage_id, _Partition())
            vectors = self._vectors.setdefault(storage_id, {})
            by_id = {c.chunk_id: c for c in part.chunks}
            stored = 0
            for chunk, emb in zip(chunks, embeddings):
                if not emb:
                    logger.warning(f"⚠️ Skipping chunk {chunk.chunk_id}: empty embedding")
                    continue
                by_id[chunk.chunk_id] = chunk
                vectors[chunk.chunk_id] = emb
                stored += 1
            kept = list(by_id.values())
            part.rebuild(kept, [vectors[c.chunk_id] for c in kept])
        logger.info(f"📥 Upserted {stored}/{len(chunks)} chunks into storage {storage_id!r}")
        return stored

    def delete_document(self, storage_id: str, document_id: str) -> int:
        with self._lock:
            part = self._parts.get(storage_id)
            if part is None:
                return 0
            vectors = self._vectors[storage_id]
            kept = [c for c in part.chunks if c.document_id != document_id]
            removed = len(part.chunks) - len(kept)
            for c in part.chunks:
                if c.document_id == document_id:
                    vectors.pop(c.chunk_id, None)
            part.rebuild(kept, [vectors[c.chunk_id] for c in kept])
        return removed

    def search(self, query_text: str, storage_id: str, k: int) -> List[SearchResult]:
        with self._lock:
            part = self._parts.get(storage_id)
            if part is None or part.mat is None or k <= 0:
                return []
            mat, chunks = part.mat, part.chunks

        qv = self.embedder.embed(query_text)
        if not qv:
            logger.error("❌ Query embedding is empty.")
            return []
        q = np.asarray(qv, dtype=np.float32)
        qn = q / (np.linalg.norm(q) + 1e-9)
        sims = mat @ qn
        if k >= sims.shape[0]:
            idx = np.argsort(-sims, kind="stable")
        else:
            idx = np.argpartition(-sims, k)[:k]
            idx = idx[np.argsort(-sims[idx], kind="stable")]
        return [SearchResult(chunk=chunks[int(i)], score=float(sims[i])) for i in idx[:k]]
