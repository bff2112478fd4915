"""Abstract base class for vector-store backends.

Adding a new backend only requires subclassing :class:`VectorStoreBase`
and implementing the lifecycle and query methods.  The pipelines are
backend-agnostic.

Dimension rule
--------------
The first vector ever stored fixes the store's dimension.  Any later
vector of a different length raises
:class:`~rag_pipeline.errors.DimensionMismatchError` and the whole batch is
rejected before anything is written.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from types import TracebackType

from rag_pipeline.errors import DimensionMismatchError
from rag_pipeline.models import SearchResult, Vector


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``; 0.0 if either vector has zero magnitude."""
    if len(a) != len(b):
        raise ValueError(f"Vectors must have the same dimension ({len(a)} != {len(b)})")

    dot = norm_a = norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    magnitude = math.sqrt(norm_a) * math.sqrt(norm_b)
    return 0.0 if magnitude == 0 else dot / magnitude


def rank_by_similarity(
    query_vector: Sequence[float],
    vectors: Iterable[Vector],
    top_k: int,
) -> list[SearchResult]:
    """Score every vector against *query_vector* and keep the best *top_k*.

    The sort is stable, so equal scores keep iteration order.
    """
    if top_k <= 0:
        return []
    scored = [(cosine_similarity(query_vector, v.values), v) for v in vectors]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [
        SearchResult(
            id=vector.id,
            score=score,
            content=vector.metadata.get("content") or "",
            metadata=dict(vector.metadata),
        )
        for score, vector in scored[:top_k]
    ]


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    ``initialize()`` must be awaited before any other operation.  Stores are
    also async context managers::

        async with InMemoryVectorStore() as store:
            await store.upsert(vectors)
    """

    def __init__(self) -> None:
        self._dimension: int | None = None

    @property
    def dimension(self) -> int | None:
        """The fixed vector length, or ``None`` while the store is empty."""
        return self._dimension

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the underlying storage.  Idempotent."""
        ...

    @abstractmethod
    async def upsert(self, vectors: list[Vector]) -> None:
        """Insert or replace *vectors* by ``id``."""
        ...

    @abstractmethod
    async def query(self, vector: list[float], top_k: int) -> list[SearchResult]:
        """Return at most *top_k* results ordered by descending similarity.

        An empty store yields an empty list.
        """
        ...

    @abstractmethod
    async def delete(self, ids: list[str]) -> None:
        """Remove vectors by ``id``; unknown ids are ignored."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Remove every vector and forget the dimension."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    # -- optional overrides ---------------------------------------------------

    async def close(self) -> None:
        """Flush buffered state and release resources."""

    # -- helpers --------------------------------------------------------------

    def _check_dimensions(self, vectors: Sequence[Vector]) -> int | None:
        """Validate a whole batch against the store's dimension.

        Returns the dimension the store will have once the batch is applied,
        without changing ``self._dimension``; callers commit it after a
        successful write.
        """
        expected = self._dimension
        for vector in vectors:
            if expected is None:
                expected = vector.dimension
            elif vector.dimension != expected:
                raise DimensionMismatchError(expected, vector.dimension, vector.id)
        return expected

    async def __aenter__(self) -> VectorStoreBase:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
