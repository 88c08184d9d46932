"""Update task: the unit the orchestrator schedules.

Each call runs, for one trading date:

    holiday check -> existence firewall -> feed fetch -> map rows -> smart upsert

Return value:
    True   new or changed data was written
    False  nothing written (already present, feed empty or unavailable)
    None   the date is a holiday, nothing was fetched
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from tw_quant.calendar.holidays import HolidayOracle
from tw_quant.calendar.resolver import TradingCalendarResolver
from tw_quant.infrastructure.observability import get_ingestion_logger
from tw_quant.ingestion.feed_status import FeedStatusRegistry, feed_id
from tw_quant.ingestion.ports.feeds import IMarketFeed, Row
from tw_quant.shared.exceptions import FeedUnavailable, InvalidRecordError
from tw_quant.storage.ports import Filter
from tw_quant.storage.repositories.base import BatchUpsertResult, SmartUpsertRepository
from tw_quant.storage.schemas.records import CanonicalRecord

logger = get_ingestion_logger("update-task")

RecordBuilder = Callable[[str, Row], CanonicalRecord]


def pick(row: Row, name: str) -> Any:
    """Read a canonical field by snake_case or camelCase name."""
    if name in row:
        return row[name]
    head, *rest = name.split("_")
    return row.get(head + "".join(part.capitalize() for part in rest))


@dataclass
class UpdateTask:
    """A named, independently callable update task."""

    name: str
    description: str
    feed: IMarketFeed
    dataset: str
    repository: SmartUpsertRepository
    build_record: RecordBuilder
    oracle: HolidayOracle
    resolver: TradingCalendarResolver
    feed_status: FeedStatusRegistry = field(default_factory=FeedStatusRegistry)
    # filter probing whether this task's slice already exists for a date
    existence_filter: Filter | None = None

    @property
    def feed_id(self) -> str:
        return feed_id(self.feed.name, self.dataset)

    def map_rows(self, date: str, rows: list[Row]) -> tuple[list[CanonicalRecord], list[str]]:
        """Build canonical records, collecting per-row validation errors."""
        records: list[CanonicalRecord] = []
        errors: list[str] = []
        for row in rows:
            try:
                records.append(self.build_record(date, row))
            except (ValidationError, InvalidRecordError, TypeError, ValueError) as e:
                errors.append(f"{self.name}: invalid row {row!r}: {e}")
        return records, errors

    async def __call__(self, date: str | None = None, force: bool = False) -> bool | None:
        """
        Run the task for one trading date.

        Args:
            date: Trading date; resolved from the calendar when omitted
            force: Skip the existence firewall (per-field comparison still applies)

        Returns:
            True if data was written, False if nothing was written, None on holidays
        """
        target = date or await self.resolver.resolve_target_date()
        log = logger.bind(task=self.name, date=target)

        if await self.oracle.is_holiday(target):
            log.info("task_skipped_holiday")
            return None

        if not force and self.existence_filter is not None:
            existing = await self.repository.count_for_date(target, self.existence_filter)
            if existing > 0:
                log.info("task_skipped_existing", existing=existing)
                return False

        try:
            rows = await self.feed.fetch(self.dataset, target)
        except FeedUnavailable as e:
            log.warning("feed_unavailable", feed=self.feed_id, status_code=e.status_code, error=str(e))
            return False

        if not rows:
            self.feed_status.log_result(target, self.feed_id, self.description, success=False)
            return False

        records, invalid = self.map_rows(target, rows)
        for error in invalid:
            log.warning("row_rejected", error=error)

        result: BatchUpsertResult = await self.repository.smart_batch_update(records)
        result.total += len(invalid)
        result.failed += len(invalid)
        result.errors.extend(invalid)

        self.feed_status.log_result(target, self.feed_id, self.description, success=True)
        log.info(
            "task_completed",
            updated=result.updated,
            skipped=result.skipped,
            failed=result.failed,
            total=result.total,
        )
        return result.updated > 0
