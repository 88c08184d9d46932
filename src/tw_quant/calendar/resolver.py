"""Trading calendar resolver.

Maps "now" to the trading date a task family should work on: today once
the publication cutoff has passed on a trading day, otherwise the most
recent earlier trading day.
"""

from datetime import datetime, timedelta

from tw_quant.calendar.holidays import HolidayOracle
from tw_quant.infrastructure.observability import get_processing_logger
from tw_quant.infrastructure.ports.system import IClock
from tw_quant.shared.exceptions import NoTradingDayFound

logger = get_processing_logger("calendar-resolver")


class TradingCalendarResolver:
    """Resolve the target trading date for a task family."""

    def __init__(
        self,
        oracle: HolidayOracle,
        clock: IClock,
        cutoff_hour: int = 14,
        max_lookback_days: int = 30,
    ):
        """
        Args:
            oracle: Holiday oracle
            clock: Exchange-local clock
            cutoff_hour: Hour (local) after which today's data is published.
                14 for ticker tasks, 15 for market statistics.
            max_lookback_days: Bound on the backwards walk
        """
        if not 0 <= cutoff_hour <= 23:
            raise ValueError(f"cutoff_hour must be within 0..23, got {cutoff_hour}")
        self.oracle = oracle
        self.clock = clock
        self.cutoff_hour = cutoff_hour
        self.max_lookback_days = max_lookback_days

    async def resolve_target_date(self, now: datetime | None = None) -> str:
        """
        Resolve the trading date to update.

        Args:
            now: Exchange-local time; defaults to the clock

        Returns:
            Trading date as ``YYYY-MM-DD``

        Raises:
            NoTradingDayFound: If no trading day exists within max_lookback_days
        """
        now = now or self.clock.now()
        today = now.date()

        if now.hour >= self.cutoff_hour and await self.oracle.is_working_day(today):
            return today.isoformat()

        for offset in range(1, self.max_lookback_days + 1):
            candidate = today - timedelta(days=offset)
            if await self.oracle.is_working_day(candidate):
                logger.debug(
                    "target_date_resolved",
                    now=now.isoformat(),
                    target=candidate.isoformat(),
                    cutoff_hour=self.cutoff_hour,
                )
                return candidate.isoformat()

        raise NoTradingDayFound(
            f"No trading day within {self.max_lookback_days} days before {today}",
            start=today,
            max_days=self.max_lookback_days,
        )
