"""Ingestion pipeline: chunk → embed → assemble vectors → store.

A failure at any step marks only that document's
:class:`~rag_pipeline.models.IngestionResult` as failed; nothing is stored
for it, and sibling documents in a batch are unaffected.
"""

from __future__ import annotations

import asyncio
import logging

from rag_pipeline.config import IngestionConfig
from rag_pipeline.errors import IngestionError
from rag_pipeline.ingestion.chunker import TextSplitterBase, create_text_splitter
from rag_pipeline.ingestion.embedder import EmbeddingProvider
from rag_pipeline.models import Document, DocumentChunk, IngestionResult, Vector
from rag_pipeline.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Turns documents into stored vectors.

    The splitter is built from ``config.chunking`` here, so an invalid
    chunking configuration raises
    :class:`~rag_pipeline.errors.ConfigurationError` immediately.

    Parameters
    ----------
    config:
        Chunking parameters and optional embedding batch size.
    embedder:
        Embedding provider for chunk texts.
    store:
        An initialised vector store.
    """

    def __init__(self, config: IngestionConfig, embedder: EmbeddingProvider, store: VectorStoreBase) -> None:
        self.config = config
        self.splitter: TextSplitterBase = create_text_splitter(config.chunking)
        self._embedder = embedder
        self._store = store

    # -- public API -----------------------------------------------------------

    async def ingest(self, document: Document, *, timeout: float | None = None) -> IngestionResult:
        """Ingest one document and report the outcome instead of raising.

        Parameters
        ----------
        document:
            The document to chunk, embed and store.
        timeout:
            Optional deadline in seconds; exceeding it fails the document.
        """
        try:
            if timeout is None:
                stored = await self._run(document)
            else:
                stored = await asyncio.wait_for(self._run(document), timeout)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            return self._failed(document, f"Ingestion timed out after {timeout}s")
        except Exception as exc:
            return self._failed(document, str(exc) or type(exc).__name__)

        logger.info("Ingested document %s: %d chunks stored", document.id, stored)
        return IngestionResult(
            document_id=document.id,
            chunks_created=stored,
            vectors_stored=stored,
            success=True,
        )

    async def ingest_batch(self, documents: list[Document]) -> list[IngestionResult]:
        """Ingest documents one after another, collecting every result."""
        results = [await self.ingest(document) for document in documents]
        failed = sum(1 for r in results if not r.success)
        if failed:
            logger.warning("Batch ingestion finished with %d/%d failures", failed, len(results))
        return results

    # -- internals ------------------------------------------------------------

    async def _run(self, document: Document) -> int:
        chunks = self.splitter.split(document)
        if not chunks:
            raise IngestionError("No chunks created from document")

        embeddings = await self._embed([chunk.content for chunk in chunks])
        if len(embeddings) != len(chunks):
            raise IngestionError(
                f"Embedding count mismatch: expected {len(chunks)}, got {len(embeddings)}"
            )

        vectors = self._assemble(chunks, embeddings)
        await self._store.upsert(vectors)
        return len(vectors)

    async def _embed(self, texts: list[str]) -> list[list[float]]:
        batch_size = self.config.embedding_batch_size
        if not batch_size or len(texts) <= batch_size:
            return await self._embedder.embed(texts)

        batches = [texts[i : i + batch_size] for i in range(0, len(texts), batch_size)]
        logger.debug("Embedding %d chunks in %d concurrent batches", len(texts), len(batches))
        tasks = [asyncio.ensure_future(self._embedder.embed(batch)) for batch in batches]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        return [vector for batch in results for vector in batch]

    @staticmethod
    def _assemble(chunks: list[DocumentChunk], embeddings: list[list[float]]) -> list[Vector]:
        vectors = []
        for chunk, values in zip(chunks, embeddings):
            if not values:
                raise IngestionError(f"Missing embedding for chunk {chunk.chunk_index}")
            vectors.append(Vector.from_chunk(chunk, values))
        return vectors

    @staticmethod
    def _failed(document: Document, error: str) -> IngestionResult:
        logger.warning("Ingestion failed for document %s: %s", document.id, error)
        return IngestionResult(
            document_id=document.id,
            chunks_created=0,
            vectors_stored=0,
            success=False,
            error=error,
        )
