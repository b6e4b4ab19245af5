"""
Tests for parallel multi-query retrieval and cross-query merging.
"""

import time

import pytest

from conftest import FakeIndex, make_result
from docrag.core.errors import RetrievalError
from docrag.core.services.retrieval_service import RetrievalService, merge_results


class TestMergeResults:
    """Deduplication and ordering of merged search results."""

    def test_merged_list_has_unique_chunk_ids(self):
        primary = [make_result("a"), make_result("b"), make_result("c")]
        variants = [[make_result("b"), make_result("d")], [make_result("a"), make_result("e")]]

        merged = merge_results(primary, variants)

        ids = [r.chunk_id for r in merged]
        assert ids == ["a", "b", "c", "d", "e"]
        assert len(ids) == len(set(ids))

    def test_primary_copy_wins_over_variant_copies(self):
        """c1 returned by primary and two variants keeps its primary position."""
        primary = [make_result("c0"), make_result("c1", score=0.5)]
        variants = [
            [make_result("c1", score=0.99), make_result("v1")],
            [make_result("v2"), make_result("c1", score=0.98)],
        ]

        merged = merge_results(primary, variants)

        assert [r.chunk_id for r in merged].count("c1") == 1
        assert merged[1].chunk_id == "c1"
        assert merged[1].score == 0.5

    def test_earlier_variant_wins_over_later(self):
        variants = [[make_result("x", score=0.1)], [make_result("x", score=0.2)]]

        merged = merge_results([], variants)

        assert len(merged) == 1
        assert merged[0].score == 0.1

    def test_order_follows_first_occurrence_not_score(self):
        primary = [make_result("low", score=0.1)]
        variants = [[make_result("high", score=0.99)]]

        merged = merge_results(primary, variants)

        assert [r.chunk_id for r in merged] == ["low", "high"]

    def test_truncates_only_after_merging(self):
        primary = [make_result(f"p{i}") for i in range(24)] + [make_result("dup")]
        variants = [[make_result("dup"), make_result("v0"), make_result("v1")]]

        merged = merge_results(primary, variants, max_candidates=25)

        assert len(merged) == 25
        assert merged[-1].chunk_id == "dup"
        assert "v0" not in [r.chunk_id for r in merged]

    def test_empty_inputs(self):
        assert merge_results([], []) == []


class TestRetrievalService:
    """Fan-out behaviour of RetrievalService.retrieve_all."""

    def test_uses_primary_and_variant_k(self):
        index = FakeIndex()
        service = RetrievalService(index, primary_k=20, variant_k=10)

        service.retrieve_all("q", ["v1", "v2"], "store-1")

        assert sorted(index.calls) == sorted([("q", "store-1", 20), ("v1", "store-1", 10), ("v2", "store-1", 10)])

    def test_variant_results_keep_generation_order(self):
        index = FakeIndex(
            responses={"v1": [make_result("a")], "v2": [make_result("b")]},
            delays={"v1": 0.1},
        )
        service = RetrievalService(index)

        primary, variant_results = service.retrieve_all("q", ["v1", "v2"], "s")

        assert primary == []
        assert [[r.chunk_id for r in rs] for rs in variant_results] == [["a"], ["b"]]

    def test_failed_variant_yields_empty_list(self):
        index = FakeIndex(
            responses={"q": [make_result("p")], "v2": [make_result("b")]},
            failures={"v1": ConnectionError("boom")},
        )
        service = RetrievalService(index)

        primary, variant_results = service.retrieve_all("q", ["v1", "v2"], "s")

        assert [r.chunk_id for r in primary] == ["p"]
        assert variant_results[0] == []
        assert [r.chunk_id for r in variant_results[1]] == ["b"]

    def test_failed_primary_raises_retrieval_error(self):
        index = FakeIndex(failures={"q": ConnectionError("index down")})
        service = RetrievalService(index)

        with pytest.raises(RetrievalError, match="index down"):
            service.retrieve_all("q", ["v1"], "s")

    def test_slow_variant_is_abandoned(self):
        index = FakeIndex(
            responses={"q": [make_result("p")], "slow": [make_result("late")]},
            delays={"slow": 1.0},
        )
        service = RetrievalService(index, timeout=0.2)

        started = time.monotonic()
        primary, variant_results = service.retrieve_all("q", ["slow"], "s")

        assert time.monotonic() - started < 0.9
        assert [r.chunk_id for r in primary] == ["p"]
        assert variant_results == [[]]

    def test_slow_primary_raises(self):
        index = FakeIndex(delays={"q": 1.0})
        service = RetrievalService(index, timeout=0.1)

        with pytest.raises(RetrievalError, match="timed out"):
            service.retrieve_all("q", [], "s")

    def test_searches_run_concurrently(self):
        index = FakeIndex(delays={"q": 0.3, "v1": 0.3, "v2": 0.3, "v3": 0.3})
        service = RetrievalService(index)

        started = time.monotonic()
        service.retrieve_all("q", ["v1", "v2", "v3"], "s")

        assert time.monotonic() - started < 0.9
