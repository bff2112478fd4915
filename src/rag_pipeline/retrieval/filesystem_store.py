"""File-persisted vector store.

Vectors live in memory and are mirrored to a single JSON index file::

    {
      "dimension": 384,
      "vectors":   [{"id": "...", "values": [...], "metadata": {...}}, ...],
      "updatedAt": "2024-05-01T12:00:00+00:00"
    }

Every mutation rewrites the whole file (write to a temporary sibling, then
``os.replace``); there is no append log.  Search is the same brute-force
scan as :class:`~rag_pipeline.retrieval.memory_store.InMemoryVectorStore`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from rag_pipeline.errors import DimensionMismatchError, VectorStoreError
from rag_pipeline.models import SearchResult, Vector
from rag_pipeline.retrieval.base import VectorStoreBase, rank_by_similarity

logger = logging.getLogger(__name__)

DEFAULT_INDEX_FILE = "vectors.json"


class FileSystemVectorStore(VectorStoreBase):
    """JSON-file-backed vector store.

    Parameters
    ----------
    storage_path:
        Directory holding the index file; created on :meth:`initialize`.
    index_file:
        File name of the index inside *storage_path*.
    """

    def __init__(self, storage_path: str | Path, index_file: str = DEFAULT_INDEX_FILE) -> None:
        super().__init__()
        self.storage_path = Path(storage_path)
        self.index_path = self.storage_path / index_file
        self._vectors: dict[str, Vector] = {}
        self._lock = asyncio.Lock()
        self._loaded = False
        self._dirty = False

    # -- disk I/O -------------------------------------------------------------

    def _read_index(self) -> dict[str, Any] | None:
        try:
            raw = self.index_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise VectorStoreError(f"Corrupt vector index {self.index_path}: {exc}") from exc

    def _write_index(self, payload: str) -> None:
        self.storage_path.mkdir(parents=True, exist_ok=True)
        tmp_path = self.index_path.with_name(self.index_path.name + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self.index_path)

    def _serialize(self) -> str:
        data = {
            "dimension": self._dimension,
            "vectors": [v.model_dump() for v in self._vectors.values()],
            "updatedAt": datetime.now(timezone.utc).isoformat(),
        }
        return json.dumps(data, ensure_ascii=False, indent=2)

    async def _persist(self) -> None:
        await asyncio.to_thread(self._write_index, self._serialize())
        self._dirty = False
        logger.debug("Persisted %d vectors to %s", len(self._vectors), self.index_path)

    # -- VectorStoreBase overrides --------------------------------------------

    async def initialize(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self.storage_path.mkdir, parents=True, exist_ok=True)
            data = await asyncio.to_thread(self._read_index)

            self._vectors.clear()
            self._dimension = None
            self._loaded = False
            self._dirty = False
            if data is None:
                logger.info("No vector index at %s; starting empty", self.index_path)
                self._loaded = True
                return

            vectors, dimension = self._parse_index(data)
            self._vectors.update((v.id, v) for v in vectors)
            self._dimension = dimension
            self._loaded = True
            logger.info("Loaded %d vectors from %s", len(self._vectors), self.index_path)

    def _parse_index(self, data: Any) -> tuple[list[Vector], int | None]:
        """Validate a decoded index: well-formed entries, one consistent dimension."""
        try:
            vectors = [Vector.model_validate(item) for item in data.get("vectors", [])]
        except (ValidationError, AttributeError, TypeError) as exc:
            raise VectorStoreError(f"Corrupt vector index {self.index_path}: {exc}") from exc

        declared = data.get("dimension")
        if declared is not None and (isinstance(declared, bool) or not isinstance(declared, int)):
            raise VectorStoreError(f"Corrupt vector index {self.index_path}: invalid dimension {declared!r}")

        self._dimension = declared
        try:
            dimension = self._check_dimensions(vectors)
        except DimensionMismatchError as exc:
            raise VectorStoreError(f"Corrupt vector index {self.index_path}: {exc}") from exc
        finally:
            self._dimension = None
        return vectors, dimension

    async def upsert(self, vectors: list[Vector]) -> None:
        async with self._lock:
            dimension = self._check_dimensions(vectors)
            for vector in vectors:
                self._vectors[vector.id] = vector
            self._dimension = dimension
            self._dirty = True
            await self._persist()

    async def query(self, vector: list[float], top_k: int) -> list[SearchResult]:
        if not self._vectors:
            return []
        return rank_by_similarity(vector, list(self._vectors.values()), top_k)

    async def delete(self, ids: list[str]) -> None:
        async with self._lock:
            for vector_id in ids:
                self._vectors.pop(vector_id, None)
            self._dirty = True
            await self._persist()

    async def clear(self) -> None:
        async with self._lock:
            self._vectors.clear()
            self._dimension = None
            self._dirty = True
            await self._persist()

    async def count(self) -> int:
        return len(self._vectors)

    async def close(self) -> None:
        """Flush changes whose write failed; a store that never loaded is left untouched."""
        async with self._lock:
            if self._loaded and self._dirty:
                await self._persist()
