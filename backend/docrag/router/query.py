# backend/docrag/router/query.py
from __future__ import annotations
import json
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse, StreamingResponse

from docrag.container import AppContainer
from docrag.core.entities import Citation
from docrag.core.errors import DocRagError
from docrag.core.services.prompts import NO_DOCUMENTS_REPLY
from docrag.models.schemas import CitationOut, QueryRequest, QueryResponse
from docrag.router.deps import get_container

logger = logging.getLogger("docrag.router.query")

router = APIRouter(prefix="/query", tags=["qa"])

CITATION_HEADER_FIELDS = (
    "id", "chunk_id", "document_id", "document_name", "chunk_index", "relevance_score", "is_text_input",
)


def citations_header(citations: List[Citation]) -> str:
    """Compact ASCII JSON of the citations, small enough for a response header."""
    return json.dumps(
        [{f: getattr(c, f) for f in CITATION_HEADER_FIELDS} for c in citations],
        separators=(",", ":"),
    )


def _validate(payload: QueryRequest) -> None:
    if not payload.message or not payload.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No message provided")


@router.post("", response_model=QueryResponse)
def query(payload: QueryRequest, container: AppContainer = Depends(get_container)):
    _validate(payload)
    history = [m.to_entity() for m in payload.chat_history]
    try:
        result = container.qa_service.answer(payload.message, payload.storage_id, history)
    except DocRagError:
        logger.exception("❌ Query processing error")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to process query")

    outcome = result.outcome
    return QueryResponse(
        response=result.text,
        citations=[CitationOut.from_entity(c) for c in outcome.citations],
        context=outcome.used_context,
        search_results=outcome.result_count,
        text_input_chunks=outcome.text_input_chunks,
    )


@router.post("/stream")
def stream(payload: QueryRequest, container: AppContainer = Depends(get_container)):
    _validate(payload)
    history = [m.to_entity() for m in payload.chat_history]
    try:
        outcome, tokens = container.qa_service.stream(payload.message, payload.storage_id, history)
    except DocRagError:
        logger.exception("❌ Streaming query error")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to process query")

    if not outcome.used_context:
        return JSONResponse({"error": NO_DOCUMENTS_REPLY, "citations": [], "context": False})

    def _gen():
        try:
            yield from tokens
        except DocRagError as e:
            logger.error(f"❌ Stream aborted: {e}")
            yield "\n\n⚠️ Streaming error: the answer could not be completed."

    headers = {
        "Cache-Control": "no-cache",
        "X-Context-Length": str(len(outcome.context_text)),
        "X-Results-Count": str(outcome.result_count),
        "X-Citations-Count": str(len(outcome.citations)),
        "X-Citations": citations_header(outcome.citations),
    }
    return StreamingResponse(_gen(), media_type="text/plain; charset=utf-8", headers=headers)
