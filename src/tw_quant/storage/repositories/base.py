"""Idempotent upsert layer.

Every write is a read-compare-write keyed on the record's unique key:

  - no stored document          -> write, WriteOutcome.CREATED
  - a compared field differs    -> merge write, WriteOutcome.UPDATED
  - otherwise                   -> no write, WriteOutcome.UNCHANGED

For partial records only the fields the incoming record actually carries
(not None) are compared and written, so a slice landed by one source never
reverts fields landed by another.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

from tw_quant.infrastructure.observability import get_storage_logger
from tw_quant.infrastructure.ports.system import IClock
from tw_quant.shared.exceptions import StoreWriteFailure
from tw_quant.shared.models.enums import WriteOutcome
from tw_quant.storage.ports import Filter, IDocumentStore, Sort
from tw_quant.storage.schemas.records import CanonicalRecord

RecordT = TypeVar("RecordT", bound=CanonicalRecord)

logger = get_storage_logger("upsert-repository")


@dataclass
class BatchUpsertResult:
    """Outcome of smart_batch_update."""

    updated: int = 0  # created + updated
    skipped: int = 0  # unchanged
    total: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated": self.updated,
            "skipped": self.skipped,
            "total": self.total,
            "failed": self.failed,
            "errors": list(self.errors),
        }


class SmartUpsertRepository(Generic[RecordT]):
    """Base repository with change-detecting upserts.

    Subclasses set ``model`` and ``default_collection``.
    """

    model: ClassVar[type[CanonicalRecord]]
    default_collection: ClassVar[str]
    # False: the incoming record is authoritative, None values overwrite
    merge_partial: ClassVar[bool] = True

    def __init__(
        self,
        store: IDocumentStore,
        clock: IClock,
        collection: str | None = None,
    ):
        """Initialize repository.

        Args:
            store: Document store adapter
            clock: Clock used for created_at/updated_at stamps
            collection: Override the collection name
        """
        self.store = store
        self.clock = clock
        self.collection = collection or self.default_collection

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _parse(self, document: dict[str, Any]) -> RecordT:
        return self.model.model_validate(document)

    async def get(self, key: Filter) -> RecordT | None:
        document = await self.store.find_one(self.collection, key)
        return self._parse(document) if document is not None else None

    async def find(
        self,
        filters: Filter | None = None,
        sort: Sort | None = None,
        limit: int | None = None,
    ) -> list[RecordT]:
        documents = await self.store.find(self.collection, filters, sort=sort, limit=limit)
        return [self._parse(doc) for doc in documents]

    async def count(self, filters: Filter | None = None) -> int:
        return await self.store.count(self.collection, filters)

    async def count_for_date(self, date: str, filters: Filter | None = None) -> int:
        """Existence check used by the update tasks."""
        return await self.count({"date": date, **(filters or {})})

    async def get_all_dates(self, filters: Filter | None = None) -> list[str]:
        return await self.store.distinct(self.collection, "date", filters)

    async def get_available_dates(self, start_date: str, end_date: str) -> list[str]:
        """Dates with stored records inside [start_date, end_date], ascending."""
        return await self.get_all_dates({"date": {"$gte": start_date, "$lte": end_date}})

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def has_changes(self, existing: RecordT, incoming: RecordT) -> bool:
        """Compare the entity's key fields."""
        for name in self.model.COMPARE_FIELDS:
            new_value = getattr(incoming, name)
            if new_value is None and self.merge_partial:
                continue
            if getattr(existing, name) != new_value:
                return True
        return False

    async def upsert(self, record: RecordT) -> WriteOutcome:
        """
        Read-compare-write one record.

        Args:
            record: Canonical record, possibly partial

        Returns:
            WriteOutcome.CREATED, UPDATED or UNCHANGED

        Raises:
            StoreWriteFailure: If the store rejects the read or the write
        """
        key = record.key()
        try:
            stored = await self.store.find_one(self.collection, key)
        except Exception as e:
            raise StoreWriteFailure(
                f"Failed to read {self.collection} {key}: {e}",
                collection=self.collection,
                key=key,
            ) from e

        if stored is None:
            outcome = WriteOutcome.CREATED
        elif self.has_changes(self._parse(stored), record):
            outcome = WriteOutcome.UPDATED
        else:
            return WriteOutcome.UNCHANGED

        now = self.clock.utcnow().isoformat()
        document = record.to_document(exclude_none=self.merge_partial)
        document["updatedAt"] = now
        if outcome is WriteOutcome.CREATED:
            document["createdAt"] = now

        try:
            await self.store.upsert(self.collection, key, document)
        except Exception as e:
            raise StoreWriteFailure(
                f"Failed to write {self.collection} {key}: {e}",
                collection=self.collection,
                key=key,
            ) from e

        logger.debug("record_upserted", collection=self.collection, key=key, outcome=outcome.value)
        return outcome

    async def smart_batch_update(self, records: list[RecordT]) -> BatchUpsertResult:
        """
        Upsert records one by one, isolating per-record failures.

        Args:
            records: Canonical records

        Returns:
            BatchUpsertResult with updated/skipped/failed counts
        """
        result = BatchUpsertResult(total=len(records))

        for record in records:
            try:
                outcome = await self.upsert(record)
            except StoreWriteFailure as e:
                result.failed += 1
                result.errors.append(str(e))
                logger.error("record_upsert_failed", collection=self.collection, key=e.key, error=str(e))
                continue

            if outcome.wrote:
                result.updated += 1
            else:
                result.skipped += 1

        logger.info(
            "batch_upserted",
            collection=self.collection,
            updated=result.updated,
            skipped=result.skipped,
            failed=result.failed,
            total=result.total,
        )
        return result
