"""Command-line entry point.

Providers are chosen from the environment (see :class:`~rag_pipeline.config.Settings`)::

    VECTOR_STORE_PROVIDER=filesystem rag-pipeline ingest docs/*.md --metadata team=search
    VECTOR_STORE_PROVIDER=filesystem rag-pipeline query "how is overlap applied?" --top-k 3
    VECTOR_STORE_PROVIDER=filesystem rag-pipeline stats

Results are printed as JSON.  ``ingest`` exits with status 1 when any file
failed to load or ingest.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from pydantic import ValidationError

from rag_pipeline.config import QueryConfig, Settings, get_settings
from rag_pipeline.errors import ConfigurationError, LoaderError, RAGPipelineError
from rag_pipeline.factory import ProviderFactory
from rag_pipeline.ingestion.embedder import EmbeddingProvider
from rag_pipeline.ingestion.pipeline import IngestionPipeline
from rag_pipeline.models import Document, IngestionResult
from rag_pipeline.retrieval.base import VectorStoreBase
from rag_pipeline.retrieval.pipeline import QueryPipeline

logger = logging.getLogger(__name__)

Handler = Callable[[argparse.Namespace, Settings], Awaitable[int]]


def _parse_metadata(pairs: list[str]) -> dict[str, str]:
    metadata: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"metadata must be KEY=VALUE, got {pair!r}")
        metadata[key] = value
    return metadata


def _providers(settings: Settings) -> tuple[EmbeddingProvider, VectorStoreBase]:
    embedder = ProviderFactory.create_embedding_provider(settings.embedding_config())
    store = ProviderFactory.create_vector_store(settings.vector_store_config())
    return embedder, store


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


# ── Commands ──────────────────────────────────────────────────────────


async def _ingest(args: argparse.Namespace, settings: Settings) -> int:
    metadata = _parse_metadata(args.metadata)
    embedder, store = _providers(settings)
    pipeline = IngestionPipeline(settings.ingestion_config(), embedder, store)

    results: list[IngestionResult] = []
    documents: list[Document] = []
    for path in args.paths:
        try:
            loader = ProviderFactory.get_loader_for_file(path)
            documents.append(await loader.load(path, metadata))
        except (ConfigurationError, LoaderError) as exc:
            logger.warning("Skipping %s: %s", path, exc)
            results.append(IngestionResult(document_id=str(path), success=False, error=str(exc)))

    try:
        async with store:
            results.extend(await pipeline.ingest_batch(documents))
    finally:
        await embedder.close()

    _emit([r.model_dump() for r in results])
    return 0 if all(r.success for r in results) else 1


async def _query(args: argparse.Namespace, settings: Settings) -> int:
    overrides = {"top_k": args.top_k, "min_score": args.min_score}
    try:
        config = QueryConfig.model_validate(
            {**settings.query_config().model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid query options: {exc}") from exc

    embedder, store = _providers(settings)
    pipeline = QueryPipeline(config, embedder, store)
    try:
        async with store:
            result = await pipeline.query(args.text)
    finally:
        await embedder.close()

    _emit(result.model_dump())
    return 0


async def _stats(args: argparse.Namespace, settings: Settings) -> int:
    embedder, store = _providers(settings)
    try:
        async with store:
            _emit(
                {
                    "vector_store": settings.vector_store_provider,
                    "vectors": await store.count(),
                    "dimension": store.dimension,
                    "embedding_model": embedder.get_model_name(),
                    "embedding_dimension": embedder.get_dimension(),
                }
            )
    finally:
        await embedder.close()
    return 0


# ── CLI ───────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rag-pipeline", description="Document ingestion and retrieval")
    commands = parser.add_subparsers(dest="command", required=True)

    ingest = commands.add_parser("ingest", help="Load, chunk, embed and store files")
    ingest.add_argument("paths", nargs="+", type=Path, help="Files to ingest (.txt, .md, .pdf)")
    ingest.add_argument(
        "--metadata",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Metadata attached to every document (repeatable)",
    )
    ingest.set_defaults(handler=_ingest)

    query = commands.add_parser("query", help="Search stored chunks")
    query.add_argument("text", help="Natural-language query")
    query.add_argument("--top-k", type=int, default=None, help="Override QUERY_TOP_K")
    query.add_argument("--min-score", type=float, default=None, help="Override QUERY_MIN_SCORE")
    query.set_defaults(handler=_query)

    stats = commands.add_parser("stats", help="Show vector-store statistics")
    stats.set_defaults(handler=_stats)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    handler: Handler = args.handler
    try:
        return asyncio.run(handler(args, settings))
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))
    except RAGPipelineError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 1


if __name__ == "__main__":
    sys.exit(main())
