"""
Tests for the in-process vector index and the hash embedding.
"""

from docrag.core.entities import Chunk
from docrag.models.embedding.hash_embedding import HashEmbedding
from docrag.models.index.memory_index import InMemoryVectorIndex


def _chunk(chunk_id, content, document_id="doc-1", chunk_index=0):
    return Chunk(chunk_id=chunk_id, document_id=document_id, chunk_index=chunk_index, content=content)


class TestHashEmbedding:
    def test_deterministic_and_normalized(self):
        emb = HashEmbedding(dim=64)

        a = emb.embed("tides are caused by the moon")
        b = emb.embed("tides are caused by the moon")

        assert a == b
        assert len(a) == 64
        assert abs(sum(v * v for v in a) - 1.0) < 1e-6

    def test_empty_text_has_no_embedding(self):
        assert HashEmbedding(dim=16).embed("   ") == []


class TestInMemoryVectorIndex:
    """Upsert, search and delete against one or more storage scopes."""

    def setup_method(self):
        self.index = InMemoryVectorIndex(HashEmbedding(dim=256))

    def test_search_ranks_overlapping_text_first(self):
        self.index.upsert_chunks(
            "s1",
            [
                _chunk("tide", "ocean tides follow the moon"),
                _chunk("bread", "bake bread with flour and yeast"),
            ],
        )

        results = self.index.search("why do ocean tides follow the moon", "s1", k=2)

        assert results[0].chunk_id == "tide"
        assert results[0].score >= results[1].score

    def test_storage_scopes_are_isolated(self):
        self.index.upsert_chunks("alice", [_chunk("a1", "shared words here")])
        self.index.upsert_chunks("bob", [_chunk("b1", "shared words here")])

        results = self.index.search("shared words", "alice", k=10)

        assert [r.chunk_id for r in results] == ["a1"]
        assert self.index.search("shared words", "carol", k=10) == []

    def test_upsert_replaces_same_chunk_id(self):
        self.index.upsert_chunks("s", [_chunk("c", "old text")])
        self.index.upsert_chunks("s", [_chunk("c", "new text")])

        results = self.index.search("new text", "s", k=5)

        assert len(results) == 1
        assert results[0].chunk.content == "new text"

    def test_k_limits_result_count(self):
        self.index.upsert_chunks("s", [_chunk(f"c{i}", f"chunk number {i}", chunk_index=i) for i in range(6)])

        assert len(self.index.search("chunk number", "s", k=3)) == 3

    def test_delete_document_removes_only_its_chunks(self):
        self.index.upsert_chunks(
            "s",
            [
                _chunk("a0", "alpha text", document_id="A"),
                _chunk("a1", "alpha more", document_id="A", chunk_index=1),
                _chunk("b0", "alpha beta", document_id="B"),
            ],
        )

        removed = self.index.delete_document("s", "A")

        assert removed == 2
        assert [r.chunk_id for r in self.index.search("alpha", "s", k=10)] == ["b0"]
        assert self.index.delete_document("missing", "A") == 0

    def test_upsert_counts_only_stored_chunks(self):
        stored = self.index.upsert_chunks("s", [_chunk("real", "some words"), _chunk("blank", "   ")])

        assert stored == 1
        assert [r.chunk_id for r in self.index.search("some words", "s", k=5)] == ["real"]
