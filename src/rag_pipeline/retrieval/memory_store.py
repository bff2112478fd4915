"""In-memory vector store: brute-force cosine search over a dict."""

from __future__ import annotations

import asyncio
import logging

from rag_pipeline.models import SearchResult, Vector
from rag_pipeline.retrieval.base import VectorStoreBase, rank_by_similarity

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStoreBase):
    """Vectors held for the lifetime of the process.

    ``query`` scores every stored vector (linear scan).  Mutations are
    serialised per instance with an ``asyncio.Lock``.
    """

    def __init__(self) -> None:
        super().__init__()
        self._vectors: dict[str, Vector] = {}
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        async with self._lock:
            self._vectors.clear()
            self._dimension = None

    async def upsert(self, vectors: list[Vector]) -> None:
        async with self._lock:
            dimension = self._check_dimensions(vectors)
            for vector in vectors:
                self._vectors[vector.id] = vector
            self._dimension = dimension
        logger.debug("Upserted %d vectors (total=%d)", len(vectors), len(self._vectors))

    async def query(self, vector: list[float], top_k: int) -> list[SearchResult]:
        if not self._vectors:
            return []
        return rank_by_similarity(vector, list(self._vectors.values()), top_k)

    async def delete(self, ids: list[str]) -> None:
        async with self._lock:
            for vector_id in ids:
                self._vectors.pop(vector_id, None)

    async def clear(self) -> None:
        async with self._lock:
            self._vectors.clear()
            self._dimension = None

    async def count(self) -> int:
        return len(self._vectors)
