"""In-process document store.

Used for dry runs and tests. Documents live in dicts keyed by their unique
key, so the key uniqueness the Postgres adapter enforces holds here too.
"""

import copy
from typing import Any

from tw_quant.storage.ports import SUPPORTED_OPERATORS, Document, Filter, Sort


def key_of(key: Filter) -> tuple:
    return tuple(sorted(key.items()))


def _compare(op: str, value: Any, expected: Any) -> bool:
    if op == "$eq":
        return value == expected
    if op == "$ne":
        return value != expected
    if op == "$in":
        return value in expected
    if value is None or expected is None:
        return False
    if op == "$gt":
        return value > expected
    if op == "$gte":
        return value >= expected
    if op == "$lt":
        return value < expected
    if op == "$lte":
        return value <= expected
    raise ValueError(f"Unsupported filter operator: {op}")


def matches(document: Document, filters: Filter | None) -> bool:
    """Evaluate a filter against one document."""
    for field, condition in (filters or {}).items():
        value = document.get(field)
        if isinstance(condition, dict) and condition.keys() <= SUPPORTED_OPERATORS:
            if not all(_compare(op, value, expected) for op, expected in condition.items()):
                return False
        elif value != condition:
            return False
    return True


def _sort_key(field: str):
    # None sorts first ascending, last descending
    def key(document: Document):
        value = document.get(field)
        return (value is not None, value)

    return key


class InMemoryDocumentStore:
    """Dict-backed implementation of IDocumentStore."""

    def __init__(self):
        self._collections: dict[str, dict[tuple, Document]] = {}

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    def _collection(self, name: str) -> dict[tuple, Document]:
        return self._collections.setdefault(name, {})

    async def find_one(self, collection: str, key: Filter) -> Document | None:
        document = self._collection(collection).get(key_of(key))
        return copy.deepcopy(document) if document is not None else None

    async def find(
        self,
        collection: str,
        filters: Filter | None = None,
        sort: Sort | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        results = [
            doc for doc in self._collection(collection).values() if matches(doc, filters)
        ]
        # stable sorts applied last-to-first give multi-key ordering
        for field, direction in reversed(sort or []):
            results.sort(key=_sort_key(field), reverse=direction < 0)
        if limit is not None:
            results = results[:limit]
        return copy.deepcopy(results)

    async def upsert(self, collection: str, key: Filter, document: Document) -> None:
        docs = self._collection(collection)
        stored = docs.setdefault(key_of(key), dict(key))
        stored.update(copy.deepcopy(document))

    async def count(self, collection: str, filters: Filter | None = None) -> int:
        return sum(1 for doc in self._collection(collection).values() if matches(doc, filters))

    async def distinct(
        self, collection: str, field: str, filters: Filter | None = None
    ) -> list[Any]:
        values = {
            doc.get(field)
            for doc in self._collection(collection).values()
            if matches(doc, filters) and doc.get(field) is not None
        }
        return sorted(values)

    async def delete_many(self, collection: str, filters: Filter) -> int:
        docs = self._collection(collection)
        doomed = [k for k, doc in docs.items() if matches(doc, filters)]
        for k in doomed:
            del docs[k]
        return len(doomed)
