"""
Retrieval: vector stores and the query pipeline.

Public surface
--------------
- :class:`VectorStoreBase`: abstract backend.
- :class:`InMemoryVectorStore`: process-lifetime store.
- :class:`FileSystemVectorStore`: JSON-file-persisted store.
- :class:`PostgresVectorStore`: pgvector-backed store.
- :class:`QueryPipeline`: embed → search → filter.
- :func:`cosine_similarity`: the similarity metric of the brute-force stores.
"""

from rag_pipeline.retrieval.base import VectorStoreBase, cosine_similarity
from rag_pipeline.retrieval.filesystem_store import FileSystemVectorStore
from rag_pipeline.retrieval.memory_store import InMemoryVectorStore
from rag_pipeline.retrieval.pipeline import QueryPipeline

__all__ = [
    "FileSystemVectorStore",
    "InMemoryVectorStore",
    "PostgresVectorStore",
    "QueryPipeline",
    "VectorStoreBase",
    "cosine_similarity",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import PostgresVectorStore to avoid pulling in psycopg at import time."""
    if name == "PostgresVectorStore":
        from rag_pipeline.retrieval.postgres_store import PostgresVectorStore

        return PostgresVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
