from .error_mapper import FeedErrorMapper
from .holiday_calendar import HttpHolidayCalendarSource
from .http_feed import HttpMarketFeed

__all__ = ["FeedErrorMapper", "HttpHolidayCalendarSource", "HttpMarketFeed"]
