"""Value types passed between the splitter, embedder, stores and pipelines."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid4())


class Document(BaseModel):
    """A source document handed to the ingestion pipeline.

    Attributes
    ----------
    id:
        Opaque unique identifier; generated when not supplied.
    content:
        Full document text.
    metadata:
        Open key/value map copied onto every chunk.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class DocumentChunk(BaseModel):
    """A contiguous piece of a :class:`Document` produced by a splitter.

    ``chunk_index`` is dense and 0-based, following the order in which the
    pieces appear in the source text.
    """

    id: str = Field(default_factory=new_id)
    document_id: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    chunk_index: int = Field(ge=0)


class Vector(BaseModel):
    """An embedding plus the metadata needed to reconstruct its chunk."""

    id: str
    values: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def dimension(self) -> int:
        return len(self.values)

    @classmethod
    def from_chunk(cls, chunk: DocumentChunk, values: list[float]) -> Vector:
        """Pair *chunk* with its embedding, carrying content and position in metadata."""
        return cls(
            id=chunk.id,
            values=values,
            metadata={
                **chunk.metadata,
                "content": chunk.content,
                "document_id": chunk.document_id,
                "chunk_index": chunk.chunk_index,
            },
        )


class SearchResult(BaseModel):
    """A stored vector ranked against a query (higher ``score`` = more similar)."""

    id: str
    score: float
    content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class IngestionResult(BaseModel):
    """Outcome of ingesting one document."""

    document_id: str
    chunks_created: int = 0
    vectors_stored: int = 0
    success: bool
    error: str | None = None


class QueryResult(BaseModel):
    """Ranked answer to one natural-language query."""

    query: str
    results: list[SearchResult] = Field(default_factory=list)
    total_results: int = 0
    processing_time_ms: float = 0.0
