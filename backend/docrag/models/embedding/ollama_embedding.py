# backend/docrag/models/embedding/ollama_embedding.py
from __future__ import annotations
from typing import List
import os, requests, time, math, logging

from docrag.core.ports.embeddings import IEmbeddingModel

logger = logging.getLogger("docrag.embedding.ollama")


def resolve_ollama_host(explicit: str | None = None) -> str:
    """Resolve Ollama host inside/outside Docker with env override."""
    host = explicit or os.getenv("OLLAMA_HOST")
    if host:
        return host.rstrip("/")
    if os.path.exists("/.dockerenv"):
        return "http://ollama:11434"
    return "http://127.0.0.1:11434"


def _l2_normalize(vec: List[float]) -> List[float]:
    s = sum(x * x for x in vec)
    if s <= 0.0:
        return vec
    inv = 1.0 / math.sqrt(s)
    return [x * inv for x in vec]


class OllamaEmbedding(IEmbeddingModel):
    """Embeddings from Ollama's /api/embed, batched, with a small retry loop."""

    def __init__(
        self,
        host: str | None = None,
        model: str = "nomic-embed-text",
        dim: int = 768,
        timeout: float = 60.0,
        batch_size: int = 16,
        session: requests.Session | None = None,
    ):
        self.host = resolve_ollama_host(host)
        self.model = model if ":" in model else f"{model}:latest"
        self.dim = dim
        self.timeout = timeout
        self.batch_size = batch_size
        self.session = session or requests.Session()

    def _post(self, inputs: List[str]) -> List[List[float]]:
        url = f"{self.host}/api/embed"
        last_err: Exception | None = None
        for attempt in range(3):
            try:
                r = self.session.post(url, json={"model": self.model, "input": inputs}, timeout=self.timeout)
                r.raise_for_status()
                embs = r.json().get("embeddings") or []
                if len(embs) != len(inputs):
                    raise ValueError(f"Embedding batch mismatch: {len(embs)} vs {len(inputs)}")
                return embs
            except (requests.RequestException, ValueError) as e:
                last_err = e
                logger.warning(f"⚠️ Embed request failed ({len(inputs)} items): {e} (Attempt {attempt + 1}/3)")
                time.sleep(attempt + 1)
        raise RuntimeError(f"Ollama embedding failed after 3 attempts: {last_err}")

    def embed(self, text: str) -> List[float]:
        if not (text := (text or "").strip()):
            return []
        vec = self._post([text])[0]
        return _l2_normalize([float(x) for x in vec]) if vec else []

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        clean = [(t or "").strip() for t in texts]
        idxs = [i for i, t in enumerate(clean) if t]
        out: List[List[float]] = [[] for _ in texts]
        for start in range(0, len(idxs), self.batch_size):
            sub = idxs[start:start + self.batch_size]
            for slot, vec in zip(sub, self._post([clean[i] for i in sub])):
                if vec:
                    out[slot] = _l2_normalize([float(x) for x in vec])
        return out
