# backend/docrag/router/chunks.py
from __future__ import annotations
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status

from docrag.container import AppContainer
from docrag.models.schemas import DeleteDocumentResponse, UpsertChunksRequest, UpsertChunksResponse
from docrag.router.deps import get_container

logger = logging.getLogger("docrag.router.chunks")

router = APIRouter(tags=["chunks"])


@router.post("/chunks", response_model=UpsertChunksResponse)
def upsert_chunks(request: UpsertChunksRequest, container: AppContainer = Depends(get_container)):
    """Store pre-split chunks from the ingestion pipeline under one storage scope."""
    bad = [c.chunk_id for c in request.chunks if c.end_char < c.start_char]
    if bad:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"end_char precedes start_char for chunks: {bad[:5]}",
        )
    upserted = container.index.upsert_chunks(request.storage_id, [c.to_entity() for c in request.chunks])
    logger.info("✅ Upsert done | storage=%s | received=%d | stored=%d",
                request.storage_id, len(request.chunks), upserted)
    return UpsertChunksResponse(storage_id=request.storage_id, upserted=upserted)


@router.delete("/documents/{document_id}", response_model=DeleteDocumentResponse)
def delete_document(
    document_id: str,
    storage_id: str = Query(..., min_length=1),
    container: AppContainer = Depends(get_container),
):
    removed = container.index.delete_document(storage_id, document_id)
    logger.info(f"🗑️ Removed {removed} chunks of document {document_id} from storage {storage_id!r}")
    return DeleteDocumentResponse(document_id=document_id, removed=removed)
