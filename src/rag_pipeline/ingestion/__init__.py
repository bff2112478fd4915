"""
Ingestion: loading, chunking, and embedding documents into a vector store.

This package holds the splitting strategies, the embedding providers, the
file loaders, and the :class:`~rag_pipeline.ingestion.pipeline.IngestionPipeline`
that ties them together.
"""
