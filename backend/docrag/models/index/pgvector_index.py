# backend/docrag/models/index/pgvector_index.py

from __future__ import annotations
from typing import Iterable, List
import os, logging
import numpy as np
import psycopg
from psycopg import sql
from docrag.core.entities import Chunk, SearchResult
from docrag.core.errors import RetrievalError
from docrag.core.ports.embeddings import IEmbeddingModel
from docrag.core.ports.vector_index import IVectorIndex
from docrag.db.session import DatabasePool

logger = logging.getLogger("docrag.index.pgvector")

# -----------------------------
# Tunables (env-overridable)
# -----------------------------
IVF_PROBES = int(os.getenv("RAG_IVF_PROBES", "50"))

_COLUMNS = (
    "chunk_id", "document_id", "chunk_index", "content", "start_char", "end_char",
    "file_name", "file_type", "source_url", "uploaded_at", "author", "published_at",
)

_DDL = """
CREATE EXTENSION IF NOT EXISTS vector;
CREATE TABLE IF NOT EXISTS {table} (
    storage_id   TEXT NOT NULL,
    chunk_id     TEXT NOT NULL,
    document_id  TEXT NOT NULL,
    chunk_index  INTEGER NOT NULL,
    content      TEXT NOT NULL,
    start_char   INTEGER NOT NULL DEFAULT 0,
    end_char     INTEGER NOT NULL DEFAULT 0,
    file_name    TEXT NOT NULL DEFAULT '',
    file_type    TEXT NOT NULL DEFAULT '',
    source_url   TEXT,
    uploaded_at  TEXT,
    author       TEXT,
    published_at TEXT,
    embedding    vector({dim}) NOT NULL,
    PRIMARY KEY (storage_id, chunk_id)
);
CREATE INDEX IF NOT EXISTS {storage_idx} ON {table} (storage_id, document_id);
"""


# -----------------------------
# Helpers
# -----------------------------
def _normalize(vec: List[float]) -> List[float]:
    v = np.asarray(vec, dtype=float)
    n = np.linalg.norm(v)
    return (v / n).tolist() if n > 0 else [0.0] * len(v)


def _to_vector_literal(vec: List[float]) -> str:
    return "[" + ",".join(f"{x:.7f}" for x in vec) + "]"


def _row_to_chunk(row: tuple) -> Chunk:
    return Chunk(**dict(zip(_COLUMNS, row)))


# -----------------------------
# Index
# -----------------------------
class PgVectorIndex(IVectorIndex):
    """Chunk index on a pgvector table, every query filtered by storage_id."""

    def __init__(self, embedder: IEmbeddingModel, table: str = "document_chunks"):
        self.embedder = embedder
        self.table = table

    def _pool(self):
        if not DatabasePool.pool:
            raise RetrievalError("Database pool not initialized")
        return DatabasePool.pool

    def _prepare_session(self, cur: psycopg.Cursor) -> None:
        try:
            cur.execute(f"SET ivfflat.probes = {IVF_PROBES};")
        except psycopg.Error as e:
            logger.warning(f"⚠️ Could not set ivfflat.probes={IVF_PROBES}: {e}")

    def ensure_schema(self) -> None:
        ddl = sql.SQL(_DDL).format(
            table=sql.Identifier(self.table),
            storage_idx=sql.Identifier(f"{self.table}_storage_idx"),
            dim=sql.Literal(int(self.embedder.dim)),
        )
        with self._pool().connection() as conn:
            conn.execute(ddl)
        logger.info(f"✅ Chunk table '{self.table}' ready")

    def search(self, query_text: str, storage_id: str, k: int) -> List[SearchResult]:
        qv = self.embedder.embed(query_text)
        if not qv:
            logger.error("❌ Query embedding is empty.")
            return []
        qv_txt = _to_vector_literal(_normalize(qv))

        query = sql.SQL("""
            SELECT {cols}, 1 - (embedding <=> %s::vector) AS score
            FROM {table}
            WHERE storage_id = %s
            ORDER BY embedding <=> %s::vector, chunk_id
            LIMIT %s;
        """).format(
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in _COLUMNS),
            table=sql.Identifier(self.table),
        )

        try:
            with self._pool().connection() as conn:
                with conn.cursor() as cur:
                    self._prepare_session(cur)
                    cur.execute(query, (qv_txt, storage_id, qv_txt, k))
                    rows = cur.fetchall()
        except psycopg.Error as e:
            raise RetrievalError(f"pgvector search failed: {e}") from e

        results = [SearchResult(chunk=_row_to_chunk(r[:-1]), score=float(r[-1])) for r in rows]
        logger.info("🔍 pgvector returned %d hits for storage %r", len(results), storage_id)
        return results

    def upsert_chunks(self, storage_id: str, chunks: Iterable[Chunk]) -> int:
        chunks = list(chunks)
        if not chunks:
            return 0
        embeddings = self.embedder.embed_batch([c.content for c in chunks])

        cols = ("storage_id", *_COLUMNS, "embedding")
        stmt = sql.SQL("""
            INSERT INTO {table} ({cols}) VALUES ({vals})
            ON CONFLICT (storage_id, chunk_id) DO UPDATE SET {updates};
        """).format(
            table=sql.Identifier(self.table),
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
            vals=sql.SQL(", ").join(
                sql.SQL("%s::vector") if c == "embedding" else sql.Placeholder() for c in cols
            ),
            updates=sql.SQL(", ").join(
                sql.SQL("{c} = EXCLUDED.{c}").format(c=sql.Identifier(c)) for c in cols[2:]
            ),
        )

        rows = []
        for chunk, emb in zip(chunks, embeddings):
            if not emb:
                logger.warning(f"⚠️ Skipping chunk {chunk.chunk_id}: empty embedding")
                continue
            values = [getattr(chunk, c) for c in _COLUMNS]
            rows.append((storage_id, *values, _to_vector_literal(_normalize(emb))))

        with self._pool().connection() as conn:
            with conn.cursor() as cur:
                cur.executemany(stmt, rows)
        logger.info(f"📥 Upserted {len(rows)} chunks into {self.table} for storage {storage_id!r}")
        return len(rows)

    def delete_document(self, storage_id: str, document_id: str) -> int:
        stmt = sql.SQL("DELETE FROM {table} WHERE storage_id = %s AND document_id = %s;").format(
            table=sql.Identifier(self.table)
        )
        with self._pool().connection() as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (storage_id, document_id))
                return cur.rowcount
