"""Holiday oracle and its cache.

Lookup order for ``is_holiday``:

  1. weekend                      -> holiday
  2. cached answer (TTL valid)    -> cached value
  3. configured known holidays    -> holiday
  4. external calendar source     -> published value (absent = trading day)
  5. source unavailable           -> weekend-only answer, logged as a warning
"""

import asyncio
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

from tw_quant.calendar.ports import IHolidayCalendarSource
from tw_quant.common.utils.date_utils import (
    DateLike,
    add_days,
    format_date,
    is_weekend,
    iter_dates,
    parse_date,
)
from tw_quant.infrastructure.observability import get_processing_logger
from tw_quant.infrastructure.ports.system import IClock
from tw_quant.shared.exceptions import HolidayOracleUnavailable, NoTradingDayFound

logger = get_processing_logger("holiday-oracle")


class HolidayCache:
    """Date -> holiday answers, invalidated as a whole after ``ttl``.

    One instance per process, created in the composition root and shared by
    reference with every oracle user.
    """

    def __init__(self, clock: IClock, ttl: timedelta = timedelta(hours=24)):
        self._clock = clock
        self._ttl = ttl
        self._entries: dict[str, bool] = {}
        self._last_update: datetime | None = None
        self._source_loaded = False

    def is_valid(self) -> bool:
        if self._last_update is None:
            return False
        return self._clock.utcnow() - self._last_update < self._ttl

    def _expire_if_stale(self) -> None:
        if self._last_update is not None and not self.is_valid():
            self.clear()

    def get(self, date: str) -> bool | None:
        self._expire_if_stale()
        return self._entries.get(date)

    def set(self, date: str, is_holiday: bool) -> None:
        self._expire_if_stale()
        if self._last_update is None:
            self._last_update = self._clock.utcnow()
        self._entries[date] = is_holiday

    def load_source_table(self, table: dict[str, bool]) -> None:
        """Store a full published calendar. Dates absent from it are trading days."""
        for date, is_holiday in table.items():
            self.set(date, is_holiday)
        if self._last_update is None:
            self._last_update = self._clock.utcnow()
        self._source_loaded = True

    @property
    def source_loaded(self) -> bool:
        self._expire_if_stale()
        return self._source_loaded

    def clear(self) -> None:
        self._entries.clear()
        self._last_update = None
        self._source_loaded = False

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._entries),
            "last_update": self._last_update.isoformat() if self._last_update else None,
            "is_valid": self.is_valid(),
            "source_loaded": self._source_loaded,
            "ttl_hours": self._ttl.total_seconds() / 3600,
        }


class HolidayOracle:
    """Answers whether a date is a market holiday."""

    def __init__(
        self,
        cache: HolidayCache,
        source: IHolidayCalendarSource | None = None,
        known_holidays: Iterable[str] = (),
        max_lookahead_days: int = 30,
    ):
        """
        Args:
            cache: Shared holiday cache
            source: External calendar; None means known holidays + weekends only
            known_holidays: ``YYYY-MM-DD`` dates that are always holidays
            max_lookahead_days: Bound for get_next_working_day
        """
        self._cache = cache
        self._source = source
        self._known = frozenset(format_date(d) for d in known_holidays)
        self._max_lookahead_days = max_lookahead_days
        self._source_lock = asyncio.Lock()

    async def is_holiday(self, date: DateLike) -> bool:
        key = format_date(date)

        if is_weekend(key):
            return True

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if key in self._known:
            self._cache.set(key, True)
            return True

        result = await self._ask_source(key)
        self._cache.set(key, result)
        return result

    async def _ask_source(self, key: str) -> bool:
        if self._source is None:
            return False

        # concurrent tasks of one group share a single fetch
        async with self._source_lock:
            if not self._cache.source_loaded:
                try:
                    table = await self._source.fetch_holiday_table()
                except HolidayOracleUnavailable as e:
                    logger.warning("holiday_source_unavailable", date=key, error=str(e))
                    return False
                self._cache.load_source_table(table)
                logger.info("holiday_table_loaded", entries=len(table))

        cached = self._cache.get(key)
        return bool(cached)

    async def is_working_day(self, date: DateLike) -> bool:
        return not await self.is_holiday(date)

    async def get_working_days(self, start_date: DateLike, end_date: DateLike) -> list[str]:
        """Trading days in [start_date, end_date]."""
        return [day for day in iter_dates(start_date, end_date) if await self.is_working_day(day)]

    async def get_next_working_day(self, date: DateLike) -> str:
        """
        First trading day strictly after ``date``.

        Raises:
            NoTradingDayFound: If none exists within max_lookahead_days
        """
        for offset in range(1, self._max_lookahead_days + 1):
            candidate = add_days(date, offset)
            if await self.is_working_day(candidate):
                return candidate
        raise NoTradingDayFound(
            f"No trading day within {self._max_lookahead_days} days after {format_date(date)}",
            start=parse_date(date),
            max_days=self._max_lookahead_days,
        )

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("holiday_cache_cleared")

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.stats()
