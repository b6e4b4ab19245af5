from __future__ import annotations
import logging
from dataclasses import dataclass

from docrag.config import Settings
from docrag.core.ports.completion import ICompletionService
from docrag.core.ports.embeddings import IEmbeddingModel
from docrag.core.ports.vector_index import IVectorIndex
from docrag.core.services.qa_service import QAService
from docrag.models.embedding.hash_embedding import HashEmbedding
from docrag.models.embedding.ollama_embedding import OllamaEmbedding
from docrag.models.index.memory_index import InMemoryVectorIndex
from docrag.models.index.pgvector_index import PgVectorIndex
from docrag.models.llm.ollama_completion import OllamaCompletion

logger = logging.getLogger("docrag.container")


@dataclass
class AppContainer:
    qa_service: QAService
    index: IVectorIndex
    completion: ICompletionService
    embedder: IEmbeddingModel
    mode: str


def build_embedder(settings: Settings) -> IEmbeddingModel:
    if settings.embedding_backend == "hash":
        logger.info(f"🔌 Using hash embedding: dim={settings.embedding_dim}")
        return HashEmbedding(dim=settings.embedding_dim)
    logger.info(f"🔌 Using Ollama embedding: model={settings.embedding_model}")
    return OllamaEmbedding(
        host=settings.ollama_host, model=settings.embedding_model, dim=settings.embedding_dim
    )


def build_index(settings: Settings, embedder: IEmbeddingModel) -> IVectorIndex:
    if settings.vector_backend == "pgvector":
        index = PgVectorIndex(embedder=embedder, table=settings.chunks_table)
        index.ensure_schema()
        logger.info(f"🔗 Using pgvector index: table={settings.chunks_table}")
        return index
    logger.info("📂 Using in-memory vector index")
    return InMemoryVectorIndex(embedder=embedder)


def build_container(settings: Settings) -> AppContainer:
    """
    Construct the collaborators once per process and wire them into the
    QA pipeline. The database pool must already be open in pgvector mode.
    """
    embedder = build_embedder(settings)
    index = build_index(settings, embedder)

    completion = OllamaCompletion(host=settings.ollama_host, model=settings.generation_model)
    completion.check_connectivity()
    expansion = None
    if settings.expansion_model and settings.expansion_model != settings.generation_model:
        expansion = OllamaCompletion(host=settings.ollama_host, model=settings.expansion_model, timeout=30.0)

    qa_service = QAService.from_config(index, completion, settings.pipeline(), expansion=expansion)
    logger.info("✅ Container built successfully")
    return AppContainer(
        qa_service=qa_service,
        index=index,
        completion=completion,
        embedder=embedder,
        mode=settings.vector_backend,
    )
