"""Provider factory: configuration records in, concrete providers out.

Selection is a plain lookup on the ``provider`` / ``type`` field.  Missing
required fields, recognised-but-unimplemented providers and unknown
providers all raise :class:`~rag_pipeline.errors.ConfigurationError`
immediately.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rag_pipeline.config import EmbeddingConfig, LoaderConfig, VectorStoreConfig
from rag_pipeline.errors import ConfigurationError
from rag_pipeline.ingestion.embedder import (
    EmbeddingProvider,
    GeminiEmbeddingProvider,
    HuggingFaceEmbeddingProvider,
    MockEmbeddingProvider,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from rag_pipeline.ingestion.loader import DocumentLoader, PdfLoader, TextFileLoader, normalize_extension
from rag_pipeline.retrieval.base import VectorStoreBase
from rag_pipeline.retrieval.filesystem_store import FileSystemVectorStore
from rag_pipeline.retrieval.memory_store import InMemoryVectorStore

logger = logging.getLogger(__name__)

_PLANNED_VECTOR_STORES = {"pinecone", "weaviate", "qdrant", "chroma"}
_PLANNED_EMBEDDINGS = {"cohere"}
_PLANNED_LOADERS = {"json"}

_LOADERS_BY_EXTENSION: dict[str, type[DocumentLoader]] = {
    ".txt": TextFileLoader,
    ".text": TextFileLoader,
    ".md": TextFileLoader,
    ".markdown": TextFileLoader,
    ".pdf": PdfLoader,
}


def _require(config: object, kind: str, *fields: str) -> None:
    missing = [f for f in fields if not getattr(config, f, None)]
    if missing:
        raise ConfigurationError(f"{', '.join(missing)} required for {kind}")


class ProviderFactory:
    """Builds vector stores, embedding providers and document loaders."""

    @staticmethod
    def create_vector_store(config: VectorStoreConfig) -> VectorStoreBase:
        provider = config.provider.lower()
        logger.debug("Creating vector store provider=%s", provider)

        if provider == "in-memory":
            return InMemoryVectorStore()

        if provider == "filesystem":
            _require(config, "filesystem vector store", "storage_path")
            return FileSystemVectorStore(config.storage_path)

        if provider == "postgres":
            _require(config, "postgres vector store", "host", "database", "user", "password")
            # Deferred so psycopg is only imported when postgres is selected.
            from rag_pipeline.retrieval.postgres_store import PostgresVectorStore

            return PostgresVectorStore(
                host=config.host,
                database=config.database,
                user=config.user,
                password=config.password,
                port=config.port or 5432,
                table=config.table,
                max_connections=config.max_connections,
                dimension=config.dimension,
            )

        if provider in _PLANNED_VECTOR_STORES:
            raise ConfigurationError(f"{provider} vector store not yet implemented")
        raise ConfigurationError(f"Unknown vector store provider: {config.provider!r}")

    @staticmethod
    def create_embedding_provider(config: EmbeddingConfig) -> EmbeddingProvider:
        provider = config.provider.lower()
        logger.debug("Creating embedding provider=%s model=%s", provider, config.model)

        if provider == "mock":
            return MockEmbeddingProvider(dimension=config.dimension or 384)

        if provider == "openai":
            _require(config, "OpenAI embedding provider", "api_key")
            return OpenAIEmbeddingProvider(config.api_key, model=config.model, dimension=config.dimension)

        if provider == "gemini":
            _require(config, "Gemini embedding provider", "api_key")
            return GeminiEmbeddingProvider(config.api_key, model=config.model, dimension=config.dimension)

        if provider == "ollama":
            return OllamaEmbeddingProvider(
                base_url=config.base_url, model=config.model, dimension=config.dimension
            )

        if provider == "huggingface":
            return HuggingFaceEmbeddingProvider(model=config.model, dimension=config.dimension)

        if provider in _PLANNED_EMBEDDINGS:
            raise ConfigurationError(f"{provider} embedding provider not yet implemented")
        raise ConfigurationError(f"Unknown embedding provider: {config.provider!r}")

    @staticmethod
    def create_document_loader(config: LoaderConfig) -> DocumentLoader:
        loader_type = config.type.lower()
        if loader_type in ("text", "markdown"):
            return TextFileLoader()
        if loader_type == "pdf":
            return PdfLoader()
        if loader_type in _PLANNED_LOADERS:
            raise ConfigurationError(f"{loader_type} document loader not yet implemented")
        raise ConfigurationError(f"Unknown document loader type: {config.type!r}")

    @staticmethod
    def get_loader_for_file(path: str | Path) -> DocumentLoader:
        """Pick a loader from the file extension of *path*."""
        suffix = Path(path).suffix
        extension = normalize_extension(suffix) if suffix else ""
        loader_cls = _LOADERS_BY_EXTENSION.get(extension)
        if loader_cls is None:
            raise ConfigurationError(f"No loader available for file extension: {extension or '(none)'}")
        return loader_cls()
