"""PostgreSQL + pgvector implementation of the vector-store abstraction.

Storage and ranking are delegated to the database: similarity is
``1 - (embedding <=> query)`` using pgvector's cosine-distance operator.

Schema (one table, name configurable)::

    id          TEXT PRIMARY KEY
    embedding   vector(N)
    content     TEXT
    metadata    JSONB
    created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP

plus an ``ivfflat (embedding vector_cosine_ops)`` index.  pgvector can only
index a column with a fixed dimension, so the column is typed (and the index
built) as soon as the dimension is known: at :meth:`initialize` when rows
already exist or a dimension was configured, otherwise inside the first
successful :meth:`upsert`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import psycopg
from psycopg import sql
from psycopg.conninfo import make_conninfo
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from rag_pipeline.errors import ConfigurationError, DimensionMismatchError, VectorStoreError
from rag_pipeline.models import SearchResult, Vector
from rag_pipeline.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def to_pgvector(values: Sequence[float]) -> str:
    """Render *values* in pgvector's text input format, e.g. ``[1.0,0.5]``."""
    return "[" + ",".join(repr(float(v)) for v in values) + "]"


class PostgresVectorStore(VectorStoreBase):
    """pgvector-backed vector store.

    Parameters
    ----------
    host, port, database, user, password:
        Connection details.
    table:
        Target table; must be a plain SQL identifier.
    max_connections:
        Upper bound of the connection pool.
    dimension:
        Optional fixed dimension.  When omitted, the dimension is read from
        existing rows or fixed by the first upsert.
    pool:
        Pre-built ``AsyncConnectionPool`` (mainly for tests).
    """

    def __init__(
        self,
        host: str,
        database: str,
        user: str,
        password: str,
        *,
        port: int = 5432,
        table: str = "vectors",
        max_connections: int = 10,
        dimension: int | None = None,
        pool: AsyncConnectionPool | None = None,
    ) -> None:
        super().__init__()
        if not _IDENTIFIER_RE.match(table):
            raise ConfigurationError(f"Invalid table name for postgres vector store: {table!r}")
        self.table_name = table
        self._configured_dimension = dimension
        self._dimension = dimension
        self._table = sql.Identifier(table)
        self._index = sql.Identifier(f"{table}_embedding_idx")
        self._indexed = False
        self._pool_open = pool is not None
        self._pool = pool or AsyncConnectionPool(
            conninfo=make_conninfo(host=host, port=port, dbname=database, user=user, password=password),
            min_size=1,
            max_size=max_connections,
            open=False,
        )

    @asynccontextmanager
    async def _connection(self, action: str) -> AsyncIterator[psycopg.AsyncConnection]:
        """Borrow a pooled connection; the block commits on success, rolls back on error."""
        if not self._pool_open:
            await self._pool.open()
            self._pool_open = True
        try:
            async with self._pool.connection() as conn:
                yield conn
        except psycopg.Error as exc:
            raise VectorStoreError(f"Postgres {action} failed on table {self.table_name!r}: {exc}") from exc

    async def _column_type(self, conn: psycopg.AsyncConnection) -> str | None:
        """Return the declared type of the embedding column, e.g. ``vector(384)``."""
        cur = await conn.execute(
            "SELECT format_type(atttypid, atttypmod) FROM pg_attribute "
            "WHERE attrelid = to_regclass(%s) AND attname = 'embedding' AND NOT attisdropped",
            [f'"{self.table_name}"'],
        )
        row = await cur.fetchone()
        return row[0] if row else None

    async def _ensure_index(self, conn: psycopg.AsyncConnection, dimension: int) -> None:
        # ALTER ... TYPE takes an ACCESS EXCLUSIVE lock.
        if await self._column_type(conn) != f"vector({dimension})":
            await conn.execute(
                sql.SQL("ALTER TABLE {table} ALTER COLUMN embedding TYPE vector({dim})").format(
                    table=self._table, dim=sql.Literal(dimension)
                )
            )
        await conn.execute(
            sql.SQL(
                "CREATE INDEX IF NOT EXISTS {index} ON {table} "
                "USING ivfflat (embedding vector_cosine_ops) WITH (lists = 100)"
            ).format(index=self._index, table=self._table)
        )
        self._indexed = True

    # -- VectorStoreBase overrides --------------------------------------------

    async def initialize(self) -> None:
        async with self._connection("initialize") as conn:
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
            await conn.execute(
                sql.SQL(
                    "CREATE TABLE IF NOT EXISTS {table} ("
                    "id TEXT PRIMARY KEY, "
                    "embedding vector, "
                    "content TEXT, "
                    "metadata JSONB, "
                    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
                ).format(table=self._table)
            )
            cur = await conn.execute(
                sql.SQL("SELECT vector_dims(embedding) FROM {table} LIMIT 1").format(table=self._table)
            )
            row = await cur.fetchone()

            stored = row[0] if row else None
            if stored is not None and self._configured_dimension not in (None, stored):
                raise DimensionMismatchError(self._configured_dimension, stored)
            self._dimension = stored if stored is not None else self._configured_dimension
            if self._dimension is not None:
                await self._ensure_index(conn, self._dimension)

        logger.info("Postgres vector store ready (table=%s, dimension=%s)", self.table_name, self._dimension)

    async def upsert(self, vectors: list[Vector]) -> None:
        if not vectors:
            return
        dimension = self._check_dimensions(vectors)
        statement = sql.SQL(
            "INSERT INTO {table} (id, embedding, content, metadata) "
            "VALUES (%s, %s::vector, %s, %s) "
            "ON CONFLICT (id) DO UPDATE SET "
            "embedding = EXCLUDED.embedding, "
            "content = EXCLUDED.content, "
            "metadata = EXCLUDED.metadata, "
            "created_at = CURRENT_TIMESTAMP"
        ).format(table=self._table)
        rows = [
            (v.id, to_pgvector(v.values), v.metadata.get("content") or "", Jsonb(v.metadata))
            for v in vectors
        ]

        async with self._connection("upsert") as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.executemany(statement, rows)
                if not self._indexed and dimension is not None:
                    await self._ensure_index(conn, dimension)

        self._dimension = dimension
        logger.debug("Upserted %d vectors into %s", len(vectors), self.table_name)

    async def query(self, vector: list[float], top_k: int) -> list[SearchResult]:
        if top_k <= 0:
            return []
        statement = sql.SQL(
            "SELECT id, content, metadata, 1 - (embedding <=> %(q)s::vector) AS score "
            "FROM {table} ORDER BY embedding <=> %(q)s::vector LIMIT %(k)s"
        ).format(table=self._table)

        async with self._connection("query") as conn:
            cur = await conn.execute(statement, {"q": to_pgvector(vector), "k": top_k})
            rows = await cur.fetchall()

        return [
            SearchResult(id=row[0], content=row[1] or "", metadata=row[2] or {}, score=float(row[3]))
            for row in rows
        ]

    async def delete(self, ids: list[str]) -> None:
        if not ids:
            return
        async with self._connection("delete") as conn:
            await conn.execute(
                sql.SQL("DELETE FROM {table} WHERE id = ANY(%s)").format(table=self._table), [list(ids)]
            )

    async def clear(self) -> None:
        async with self._connection("clear") as conn:
            await conn.execute(sql.SQL("TRUNCATE TABLE {table}").format(table=self._table))
            if self._configured_dimension is None:
                await conn.execute(sql.SQL("DROP INDEX IF EXISTS {index}").format(index=self._index))
                await conn.execute(
                    sql.SQL("ALTER TABLE {table} ALTER COLUMN embedding TYPE vector").format(table=self._table)
                )
                self._indexed = False
        self._dimension = self._configured_dimension

    async def count(self) -> int:
        async with self._connection("count") as conn:
            cur = await conn.execute(sql.SQL("SELECT COUNT(*) FROM {table}").format(table=self._table))
            row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def close(self) -> None:
        if self._pool_open:
            await self._pool.close()
            self._pool_open = False
