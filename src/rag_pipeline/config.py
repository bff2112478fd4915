"""Shared configuration loaded from environment / ``.env``.

:class:`Settings` is the application-wide view of the environment.  The
pipeline and factory never read it directly; instead they take the small
config records defined here (:class:`ChunkingConfig`, :class:`QueryConfig`,
...), which :class:`Settings` knows how to build.
"""

from __future__ import annotations

import codecs
from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings

DEFAULT_SEPARATORS: list[str] = ["\n\n", "\n", ". ", " ", ""]


class ChunkingStrategy(str, Enum):
    CHARACTER = "character"
    TOKEN = "token"
    RECURSIVE = "recursive"


# ── Config records ────────────────────────────────────────────────────


class ChunkingConfig(BaseModel):
    """How documents are cut into chunks.

    ``strategy`` is kept as a plain string so an unknown value surfaces as a
    :class:`~rag_pipeline.errors.ConfigurationError` from the splitter
    factory rather than a validation error here.
    """

    strategy: str = ChunkingStrategy.RECURSIVE.value
    chunk_size: int = 512
    chunk_overlap: int = 50
    separators: list[str] | None = None


class IngestionConfig(BaseModel):
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    embedding_batch_size: int | None = Field(
        default=None,
        gt=0,
        description="When set, chunk texts are embedded in concurrent batches of this size.",
    )


class QueryConfig(BaseModel):
    top_k: int = Field(default=5, ge=1)
    min_score: float | None = Field(
        default=None,
        description="Results scoring strictly below this are dropped (inclusive boundary).",
    )


class VectorStoreConfig(BaseModel):
    """Selects and parameterises a vector-store backend."""

    model_config = ConfigDict(extra="allow")

    provider: str = "in-memory"
    storage_path: str | None = None
    host: str | None = None
    port: int = 5432
    database: str | None = None
    user: str | None = None
    password: str | None = None
    table: str = "vectors"
    max_connections: int = 10
    dimension: int | None = None


class EmbeddingConfig(BaseModel):
    """Selects and parameterises an embedding backend."""

    model_config = ConfigDict(extra="allow")

    provider: str = "mock"
    model: str | None = None
    api_key: str | None = None
    dimension: int | None = None
    base_url: str | None = None


class LoaderConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = "text"


def decode_separators(raw: str) -> list[str]:
    """Parse a comma-separated separator list, decoding ``\\n``-style escapes."""
    if not raw:
        return list(DEFAULT_SEPARATORS)
    return [codecs.decode(part, "unicode_escape") for part in raw.split(",")]


# ── Settings ──────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Vector store
    vector_store_provider: str = Field(
        default="in-memory",
        description="One of 'in-memory', 'filesystem', 'postgres'",
    )
    vector_store_path: str = "./data/vectors"
    postgres_host: str = ""
    postgres_port: int = 5432
    postgres_database: str = ""
    postgres_user: str = ""
    postgres_password: str = ""
    postgres_table: str = "vectors"
    postgres_max_connections: int = 10

    # Embedding
    embedding_provider: str = Field(
        default="mock",
        description="One of 'mock', 'openai', 'gemini', 'ollama', 'huggingface'",
    )
    embedding_model: str = Field(default="", description="Leave empty for the provider's default model")
    embedding_dimension: int | None = None
    openai_api_key: str = ""
    gemini_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # Chunking
    chunking_strategy: str = ChunkingStrategy.RECURSIVE.value
    chunk_size: int = 512
    chunk_overlap: int = 50
    chunk_separators: str = Field(
        default="",
        description=r"Comma-separated, escape sequences allowed, e.g. '\n\n,\n,. , ,'",
    )
    embedding_batch_size: int | None = None

    # Query
    query_top_k: int = 5
    query_min_score: float | None = None

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # -- record builders --------------------------------------------------

    def vector_store_config(self) -> VectorStoreConfig:
        return VectorStoreConfig(
            provider=self.vector_store_provider,
            storage_path=self.vector_store_path or None,
            host=self.postgres_host or None,
            port=self.postgres_port,
            database=self.postgres_database or None,
            user=self.postgres_user or None,
            password=self.postgres_password or None,
            table=self.postgres_table,
            max_connections=self.postgres_max_connections,
        )

    def embedding_config(self) -> EmbeddingConfig:
        provider = self.embedding_provider.lower()
        api_key = {"openai": self.openai_api_key, "gemini": self.gemini_api_key}.get(provider, "")
        return EmbeddingConfig(
            provider=provider,
            model=self.embedding_model or None,
            api_key=api_key or None,
            dimension=self.embedding_dimension,
            base_url=self.ollama_base_url if provider == "ollama" else None,
        )

    def chunking_config(self) -> ChunkingConfig:
        return ChunkingConfig(
            strategy=self.chunking_strategy.lower(),
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            separators=decode_separators(self.chunk_separators) if self.chunk_separators else None,
        )

    def ingestion_config(self) -> IngestionConfig:
        return IngestionConfig(
            chunking=self.chunking_config(),
            embedding_batch_size=self.embedding_batch_size,
        )

    def query_config(self) -> QueryConfig:
        return QueryConfig(top_k=self.query_top_k, min_score=self.query_min_score)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide :class:`Settings`, read once from the environment."""
    return Settings()
