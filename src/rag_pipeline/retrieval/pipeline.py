"""Query pipeline: embed the query, search the store, filter by score.

Usage::

    from rag_pipeline.retrieval.pipeline import QueryPipeline

    pipeline = QueryPipeline(QueryConfig(top_k=5, min_score=0.5), embedder, store)
    result = await pipeline.query("How are chunks overlapped?")
    for hit in result.results:
        print(f"{hit.score:.3f}", hit.content[:80])
"""

from __future__ import annotations

import asyncio
import logging
import time

from rag_pipeline.config import QueryConfig
from rag_pipeline.errors import QueryPipelineError
from rag_pipeline.ingestion.embedder import EmbeddingProvider
from rag_pipeline.models import QueryResult, SearchResult
from rag_pipeline.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class QueryPipeline:
    """Turns free text into ranked :class:`SearchResult` objects.

    Parameters
    ----------
    config:
        ``top_k`` bounds the store lookup; ``min_score`` (when not ``None``)
        drops results scoring strictly below it.
    embedder:
        Embedding provider used for the query text.
    store:
        An initialised vector store.
    """

    def __init__(self, config: QueryConfig, embedder: EmbeddingProvider, store: VectorStoreBase) -> None:
        self.config = config
        self._embedder = embedder
        self._store = store

    # -- public API -----------------------------------------------------------

    async def query(self, text: str, *, timeout: float | None = None) -> QueryResult:
        """Answer one query.

        Parameters
        ----------
        text:
            Natural-language query string.
        timeout:
            Optional deadline in seconds for the whole lookup.

        Raises
        ------
        QueryPipelineError
            Wrapping whatever made the embed or search step fail.
        """
        started = time.perf_counter()
        try:
            if timeout is None:
                hits = await self._search(text)
            else:
                hits = await asyncio.wait_for(self._search(text), timeout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise QueryPipelineError(f"Query pipeline failed: {exc}") from exc

        results = self._apply_threshold(hits)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Query returned %d/%d results in %.1f ms", len(results), len(hits), elapsed_ms
        )
        return QueryResult(
            query=text,
            results=results,
            total_results=len(results),
            processing_time_ms=elapsed_ms,
        )

    async def query_batch(self, texts: list[str]) -> list[QueryResult]:
        """Answer each query in turn; the first failure aborts the batch."""
        return [await self.query(text) for text in texts]

    # -- internals ------------------------------------------------------------

    async def _search(self, text: str) -> list[SearchResult]:
        embedding = await self._embedder.embed_single(text)
        return await self._store.query(embedding, self.config.top_k)

    def _apply_threshold(self, hits: list[SearchResult]) -> list[SearchResult]:
        min_score = self.config.min_score
        if min_score is None:
            return list(hits)
        return [hit for hit in hits if hit.score >= min_score]
