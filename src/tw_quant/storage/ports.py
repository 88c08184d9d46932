"""
Document store interfaces.
Provides abstraction over the persistence engine for dependency injection.

Filters are flat dicts of aliased field name -> condition. A condition is
either a plain value (equality) or a dict of operators:

    {"date": {"$gte": "2024-01-01", "$lte": "2024-01-31"},
     "exchange": "TWSE",
     "closePrice": {"$gt": 0},
     "finiNetBuySell": {"$ne": None}}

Supported operators: $eq, $ne, $gt, $gte, $lt, $lte, $in.
"""

from typing import Any, Protocol, runtime_checkable

Document = dict[str, Any]
Filter = dict[str, Any]
Sort = list[tuple[str, int]]  # (field, 1 ascending | -1 descending)

SUPPORTED_OPERATORS = frozenset({"$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in"})


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Protocol defining document store operations.
    Each collection enforces uniqueness on the key passed to ``upsert``.
    """

    async def connect(self) -> None:
        """Open connections and ensure collections exist."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...

    async def find_one(self, collection: str, key: Filter) -> Document | None:
        """Fetch the document matching a unique key."""
        ...

    async def find(
        self,
        collection: str,
        filters: Filter | None = None,
        sort: Sort | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        """Fetch documents matching filters."""
        ...

    async def upsert(self, collection: str, key: Filter, document: Document) -> None:
        """
        Insert or merge a document by key.

        Fields present in ``document`` overwrite stored values; stored fields
        absent from ``document`` are kept.
        """
        ...

    async def count(self, collection: str, filters: Filter | None = None) -> int:
        """Count documents matching filters."""
        ...

    async def distinct(
        self, collection: str, field: str, filters: Filter | None = None
    ) -> list[Any]:
        """Distinct values of a field among matching documents, sorted."""
        ...

    async def delete_many(self, collection: str, filters: Filter) -> int:
        """Delete matching documents, returning how many were removed."""
        ...
