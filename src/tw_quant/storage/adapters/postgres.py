"""PostgreSQL document store adapter.

Each collection is a table holding one JSONB document per unique key:

    CREATE TABLE IF NOT EXISTS <collection> (
        doc_key    TEXT PRIMARY KEY,       -- "2024-01-02|2330|TWSE"
        doc        JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )

Upserts merge documents with ``doc || EXCLUDED.doc`` so a partial record
keeps the stored fields it does not carry. Filters and sorts operate on
``doc -> 'field'`` as JSONB, which orders numbers numerically and ISO date
strings chronologically.
"""

import json
import re
from typing import Any

import asyncpg

from tw_quant.infrastructure.observability import get_infrastructure_logger
from tw_quant.storage.ports import SUPPORTED_OPERATORS, Document, Filter, Sort

logger = get_infrastructure_logger("postgres-store")

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")

_SQL_OPERATORS = {
    "$eq": "=",
    "$gt": ">",
    "$gte": ">=",
    "$lt": "<",
    "$lte": "<=",
}


def _table(collection: str) -> str:
    if not _IDENTIFIER.match(collection):
        raise ValueError(f"Invalid collection name: {collection!r}")
    return collection


def _field(name: str) -> str:
    if not re.match(r"^[A-Za-z_][A-Za-z0-9_]*$", name):
        raise ValueError(f"Invalid field name: {name!r}")
    return name


def doc_key(key: Filter) -> str:
    return "|".join(str(value) for _, value in sorted(key.items()))


class _WhereBuilder:
    """Translate a filter dict into a parameterized WHERE clause."""

    def __init__(self, start_index: int = 1):
        self.clauses: list[str] = []
        self.params: list[Any] = []
        self._index = start_index

    def _param(self, value: Any) -> str:
        self.params.append(json.dumps(value))
        placeholder = f"${self._index}::jsonb"
        self._index += 1
        return placeholder

    def add(self, field: str, op: str, expected: Any) -> None:
        column = f"doc -> '{_field(field)}'"
        if op == "$ne" and expected is None:
            self.clauses.append(f"({column} IS NOT NULL AND {column} <> 'null'::jsonb)")
        elif op == "$eq" and expected is None:
            self.clauses.append(f"({column} IS NULL OR {column} = 'null'::jsonb)")
        elif op == "$ne":
            self.clauses.append(f"({column} IS NULL OR {column} <> {self._param(expected)})")
        elif op == "$in":
            options = " OR ".join(f"{column} = {self._param(v)}" for v in expected)
            self.clauses.append(f"({options or 'FALSE'})")
        elif op in _SQL_OPERATORS:
            self.clauses.append(f"{column} {_SQL_OPERATORS[op]} {self._param(expected)}")
        else:
            raise ValueError(f"Unsupported filter operator: {op}")

    def build(self, filters: Filter | None) -> tuple[str, list[Any]]:
        for field, condition in (filters or {}).items():
            if isinstance(condition, dict) and condition.keys() <= SUPPORTED_OPERATORS:
                for op, expected in condition.items():
                    self.add(field, op, expected)
            else:
                self.add(field, "$eq", condition)
        where = " AND ".join(self.clauses)
        return (f" WHERE {where}" if where else ""), self.params


class PostgresDocumentStore:
    """asyncpg-backed implementation of IDocumentStore."""

    def __init__(
        self,
        dsn: str,
        collections: list[str],
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: float = 30.0,
    ):
        self._dsn = dsn
        self._collections = [_table(c) for c in collections]
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Create the pool and the collection tables."""
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            dsn=self._dsn,
            min_size=self._min_size,
            max_size=self._max_size,
            command_timeout=self._command_timeout,
        )
        async with self._pool.acquire() as conn:
            for table in self._collections:
                await conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        doc_key TEXT PRIMARY KEY,
                        doc JSONB NOT NULL,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                    """
                )
                await conn.execute(
                    f"CREATE INDEX IF NOT EXISTS {table}_date_idx ON {table} ((doc ->> 'date'))"
                )
        logger.info("pool_created", collections=self._collections, max_size=self._max_size)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("pool_closed")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Document store not connected")
        return self._pool

    async def find_one(self, collection: str, key: Filter) -> Document | None:
        query = f"SELECT doc FROM {_table(collection)} WHERE doc_key = $1"
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, doc_key(key))
        return json.loads(row["doc"]) if row else None

    async def find(
        self,
        collection: str,
        filters: Filter | None = None,
        sort: Sort | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        where, params = _WhereBuilder().build(filters)
        query = f"SELECT doc FROM {_table(collection)}{where}"
        if sort:
            order = ", ".join(
                f"doc -> '{_field(f)}' {'DESC NULLS LAST' if d < 0 else 'ASC NULLS FIRST'}"
                for f, d in sort
            )
            query += f" ORDER BY {order}"
        if limit is not None:
            query += f" LIMIT {int(limit)}"
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
        return [json.loads(row["doc"]) for row in rows]

    async def upsert(self, collection: str, key: Filter, document: Document) -> None:
        table = _table(collection)
        query = f"""
            INSERT INTO {table} (doc_key, doc, updated_at)
            VALUES ($1, $2::jsonb, now())
            ON CONFLICT (doc_key)
            DO UPDATE SET doc = {table}.doc || EXCLUDED.doc, updated_at = now()
        """
        async with self.pool.acquire() as conn:
            await conn.execute(query, doc_key(key), json.dumps({**key, **document}))

    async def count(self, collection: str, filters: Filter | None = None) -> int:
        where, params = _WhereBuilder().build(filters)
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                f"SELECT count(*) FROM {_table(collection)}{where}", *params
            )

    async def distinct(
        self, collection: str, field: str, filters: Filter | None = None
    ) -> list[Any]:
        where, params = _WhereBuilder().build(filters)
        column = f"doc -> '{_field(field)}'"
        null_guard = f"{column} IS NOT NULL AND {column} <> 'null'::jsonb"
        where = f"{where} AND {null_guard}" if where else f" WHERE {null_guard}"
        query = f"SELECT DISTINCT {column} AS value FROM {_table(collection)}{where} ORDER BY value"
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
        return [json.loads(row["value"]) for row in rows]

    async def delete_many(self, collection: str, filters: Filter) -> int:
        where, params = _WhereBuilder().build(filters)
        async with self.pool.acquire() as conn:
            status = await conn.execute(f"DELETE FROM {_table(collection)}{where}", *params)
        # asyncpg returns a command tag like "DELETE 12"
        return int(status.split()[-1])
