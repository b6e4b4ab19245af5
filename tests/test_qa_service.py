"""
End-to-end tests of the QA pipeline against fake collaborators.
"""

import pytest

from conftest import FakeCompletion, FakeIndex, make_result
from docrag.config import PipelineConfig
from docrag.core.entities import ChatMessage
from docrag.core.errors import CompletionError, RetrievalError
from docrag.core.services.prompts import NO_DOCUMENTS_REPLY
from docrag.core.services.qa_service import QAService


def _service(index, completion, **overrides) -> QAService:
    return QAService.from_config(index, completion, PipelineConfig(**overrides))


@pytest.fixture
def populated_index() -> FakeIndex:
    return FakeIndex(
        responses={
            "define X": [
                make_result("c0", document_id="doc-a", chunk_index=0, file_name="a.pdf"),
                make_result("c1", document_id="doc-a", chunk_index=1, file_name="a.pdf"),
            ],
            "X meaning": [
                make_result("c1", document_id="doc-a", chunk_index=1, file_name="a.pdf"),
                make_result("c7", document_id="doc-b", chunk_index=3, file_name="b.pdf"),
            ],
            "X definition": [
                make_result("c1", document_id="doc-a", chunk_index=1, file_name="a.pdf"),
                make_result("t1", document_id="paste", file_name="text-input.txt", content="X is a letter."),
            ],
        }
    )


class TestBuildContext:
    """QAService.build_context scenarios."""

    def test_no_results_returns_empty_sentinel(self):
        completion = FakeCompletion(expansion="")
        service = _service(FakeIndex(), completion)

        outcome = service.build_context("define X", "store")

        assert outcome.context_text == ""
        assert outcome.citations == []
        assert outcome.used_context is False
        assert outcome.result_count == 0

    def test_overlapping_chunk_appears_once(self, populated_index):
        completion = FakeCompletion(expansion="X meaning\nX definition")
        service = _service(populated_index, completion)

        outcome = service.build_context("define X", "store")

        ids = [c.chunk_id for c in outcome.citations]
        assert ids == ["c0", "c1", "c7", "t1"]
        assert outcome.result_count == 4
        assert outcome.variants == ["X meaning", "X definition"]
        assert outcome.context_text.count("[Chunk 2]") == 1

    def test_text_input_leads_the_context(self, populated_index):
        completion = FakeCompletion(expansion="X meaning\nX definition")
        service = _service(populated_index, completion)

        outcome = service.build_context("define X", "store")

        assert outcome.context_text.startswith("[TEXT INPUT] X is a letter.")
        assert outcome.text_input_chunks == 1

    def test_searches_are_scoped_to_storage_id(self, populated_index):
        completion = FakeCompletion(expansion="X meaning")
        service = _service(populated_index, completion)

        service.build_context("define X", "tenant-42")

        assert {storage for _, storage, _ in populated_index.calls} == {"tenant-42"}

    def test_expansion_failure_falls_back_to_original_query(self, populated_index):
        completion = FakeCompletion(expansion_error=RuntimeError("llm down"))
        service = _service(populated_index, completion)

        outcome = service.build_context("define X", "store")

        assert [c.chunk_id for c in outcome.citations] == ["c0", "c1"]
        assert [q for q, _, _ in populated_index.calls] == ["define X"]

    def test_expansion_can_be_disabled(self, populated_index):
        completion = FakeCompletion(expansion="X meaning")
        service = _service(populated_index, completion, expand_queries=False)

        service.build_context("define X", "store")

        assert completion.prompts == []

    def test_primary_failure_propagates(self):
        index = FakeIndex(failures={"define X": ConnectionError("down")})
        service = _service(index, FakeCompletion())

        with pytest.raises(RetrievalError):
            service.build_context("define X", "store")

    def test_pipeline_is_idempotent(self, populated_index):
        completion = FakeCompletion(expansion="X meaning\nX definition")
        service = _service(populated_index, completion)

        first = service.build_context("define X", "store")
        second = service.build_context("define X", "store")

        assert first.context_text == second.context_text
        assert [c.chunk_id for c in first.citations] == [c.chunk_id for c in second.citations]


class TestAnswer:
    """QAService.answer behaviour."""

    def test_empty_retrieval_skips_completion(self):
        completion = FakeCompletion()
        service = _service(FakeIndex(), completion)

        answer = service.answer("define X", "store")

        assert answer.text == NO_DOCUMENTS_REPLY
        assert completion.chat_calls == []

    def test_sends_context_in_system_prompt_and_trims_history(self, populated_index):
        completion = FakeCompletion(answer="  X is a letter.  ")
        service = _service(populated_index, completion)
        history = [ChatMessage(role="user", content=f"h{i}") for i in range(10)]

        answer = service.answer("define X", "store", history)

        messages, system_prompt, _ = completion.chat_calls[0]
        assert answer.text == "X is a letter."
        assert [m.content for m in messages] == ["h4", "h5", "h6", "h7", "h8", "h9", "define X"]
        assert answer.outcome.context_text in system_prompt

    def test_completion_failure_raises(self, populated_index):
        completion = FakeCompletion(answer_error=ConnectionError("model crashed"))
        service = _service(populated_index, completion)

        with pytest.raises(CompletionError):
            service.answer("define X", "store")


class TestStream:
    """QAService.stream behaviour."""

    def test_streams_tokens_with_task_options(self, populated_index):
        completion = FakeCompletion(tokens=["X ", "is ", "a letter."])
        service = _service(populated_index, completion)

        outcome, tokens = service.stream("define X", "store")

        assert "".join(tokens) == "X is a letter."
        _, context, options = completion.stream_calls[0]
        assert context == outcome.context_text
        assert options["task_type"] == "fast"

    def test_empty_retrieval_streams_canned_reply(self):
        completion = FakeCompletion()
        service = _service(FakeIndex(), completion)

        outcome, tokens = service.stream("define X", "store")

        assert outcome.used_context is False
        assert list(tokens) == [NO_DOCUMENTS_REPLY]
        assert completion.stream_calls == []

    def test_mid_stream_failure_becomes_completion_error(self, populated_index):
        def broken():
            yield "partial "
            raise ConnectionError("socket closed")

        completion = FakeCompletion()
        completion.stream_chat = lambda messages, context, options=None: broken()
        service = _service(populated_index, completion)

        _, tokens = service.stream("define X", "store")

        assert next(tokens) == "partial "
        with pytest.raises(CompletionError):
            next(tokens)
