"""Document ingestion and similarity retrieval.

``Document → splitter → chunks → embedder → vectors → store`` on the way in,
``text → embedder → store.query → ranked results`` on the way out.
"""

from rag_pipeline.config import (
    ChunkingConfig,
    EmbeddingConfig,
    IngestionConfig,
    LoaderConfig,
    QueryConfig,
    Settings,
    VectorStoreConfig,
    get_settings,
)
from rag_pipeline.errors import (
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingError,
    LoaderError,
    QueryPipelineError,
    RAGPipelineError,
    VectorStoreError,
)
from rag_pipeline.factory import ProviderFactory
from rag_pipeline.ingestion.pipeline import IngestionPipeline
from rag_pipeline.models import (
    Document,
    DocumentChunk,
    IngestionResult,
    QueryResult,
    SearchResult,
    Vector,
)
from rag_pipeline.retrieval.pipeline import QueryPipeline

__version__ = "0.1.0"

__all__ = [
    "ChunkingConfig",
    "ConfigurationError",
    "DimensionMismatchError",
    "Document",
    "DocumentChunk",
    "EmbeddingConfig",
    "EmbeddingError",
    "IngestionConfig",
    "IngestionPipeline",
    "IngestionResult",
    "LoaderConfig",
    "LoaderError",
    "ProviderFactory",
    "QueryConfig",
    "QueryPipeline",
    "QueryPipelineError",
    "QueryResult",
    "RAGPipelineError",
    "SearchResult",
    "Settings",
    "Vector",
    "VectorStoreConfig",
    "VectorStoreError",
    "get_settings",
]
