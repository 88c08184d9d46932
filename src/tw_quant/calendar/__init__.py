"""Trading calendar: holiday oracle, holiday cache and target-date resolver."""

from .holidays import HolidayCache, HolidayOracle
from .ports import IHolidayCalendarSource
from .resolver import TradingCalendarResolver

__all__ = [
    "HolidayCache",
    "HolidayOracle",
    "IHolidayCalendarSource",
    "TradingCalendarResolver",
]
