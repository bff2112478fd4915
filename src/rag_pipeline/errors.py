"""Exception taxonomy shared by every layer of the pipeline."""

from __future__ import annotations


class RAGPipelineError(Exception):
    """Base class for all errors raised by :mod:`rag_pipeline`."""


class ConfigurationError(RAGPipelineError, ValueError):
    """A configuration record is incomplete, invalid, or names an unsupported provider.

    Always raised at construction time, never deferred to first use.
    """


class VectorStoreError(RAGPipelineError):
    """A vector-store backend failed to read, write, or query its storage."""


class DimensionMismatchError(VectorStoreError, ValueError):
    """A vector's length disagrees with the dimension fixed by the store."""

    def __init__(self, expected: int, actual: int, vector_id: str | None = None) -> None:
        self.expected = expected
        self.actual = actual
        self.vector_id = vector_id
        where = f" for vector {vector_id!r}" if vector_id is not None else ""
        super().__init__(f"Vector dimension mismatch{where}: expected {expected}, got {actual}")


class EmbeddingError(RAGPipelineError):
    """The embedding backend failed or returned an unusable response."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider} embedding failed: {message}")


class LoaderError(RAGPipelineError):
    """A document loader could not produce a :class:`~rag_pipeline.models.Document`."""


class IngestionError(RAGPipelineError):
    """A single document could not be ingested.

    Captured into that document's :class:`~rag_pipeline.models.IngestionResult`
    by the ingestion pipeline rather than propagated.
    """


class QueryPipelineError(RAGPipelineError):
    """A query could not be answered; the original cause is chained."""
