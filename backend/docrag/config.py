# backend/docrag/config.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv

# Load .env before reading settings
load_dotenv()

logger = logging.getLogger("docrag.config")


@dataclass(frozen=True)
class PipelineConfig:
    """Tunables for expansion, retrieval, packing and citations."""
    primary_k: int = 20
    variant_k: int = 10
    max_variants: int = 3
    max_candidates: int = 25
    max_context_chars: int = 12000
    max_chunk_chars: int = 1200
    piece_overhead: int = 50
    max_citations: int = 8
    preview_chars: int = 200
    search_timeout: float = 30.0
    expand_queries: bool = True


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    db_host: str = Field("localhost", validation_alias="DB_HOST")
    db_port: int = Field(5432, validation_alias="DB_PORT")
    db_user: str = Field("postgres", validation_alias="DB_USER")
    db_password: str = Field("postgres", validation_alias="DB_PASSWORD")
    db_name: str = Field("ragdb", validation_alias="DB_NAME")
    db_pool_min_size: int = Field(1, validation_alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, validation_alias="DB_POOL_MAX_SIZE")

    vector_backend: str = Field("memory", validation_alias="RAG_VECTOR_BACKEND")  # memory | pgvector
    chunks_table: str = Field("document_chunks", validation_alias="RAG_CHUNKS_TABLE")

    embedding_backend: str = Field("ollama", validation_alias="EMBEDDING_BACKEND")  # ollama | hash
    embedding_dim: int = Field(768, validation_alias="EMBEDDING_DIM")
    embedding_model: str = Field("nomic-embed-text", validation_alias="EMBEDDING_MODEL")

    ollama_host: str | None = Field(None, validation_alias="OLLAMA_HOST")
    generation_model: str = Field("llama3.2:3b", validation_alias="GENERATION_MODEL")
    expansion_model: str | None = Field(None, validation_alias="EXPANSION_MODEL")

    primary_k: int = Field(20, validation_alias="RAG_PRIMARY_K")
    variant_k: int = Field(10, validation_alias="RAG_VARIANT_K")
    max_variants: int = Field(3, validation_alias="RAG_MAX_VARIANTS")
    max_candidates: int = Field(25, validation_alias="RAG_MAX_CANDIDATES")
    max_context_chars: int = Field(12000, validation_alias="RAG_MAX_CONTEXT_CHARS")
    max_chunk_chars: int = Field(1200, validation_alias="RAG_MAX_CHUNK_CHARS")
    piece_overhead: int = Field(50, validation_alias="RAG_PIECE_OVERHEAD")
    max_citations: int = Field(8, validation_alias="RAG_MAX_CITATIONS")
    search_timeout: float = Field(30.0, validation_alias="RAG_SEARCH_TIMEOUT")
    expand_queries: bool = Field(True, validation_alias="RAG_EXPAND_QUERIES")

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    def pipeline(self) -> PipelineConfig:
        return PipelineConfig(
            primary_k=self.primary_k,
            variant_k=self.variant_k,
            max_variants=self.max_variants,
            max_candidates=self.max_candidates,
            max_context_chars=self.max_context_chars,
            max_chunk_chars=self.max_chunk_chars,
            piece_overhead=self.piece_overhead,
            max_citations=self.max_citations,
            search_timeout=self.search_timeout,
            expand_queries=self.expand_queries,
        )


# Instantiate settings once
settings = Settings()
