"""
tw-quant Exception Hierarchy

Typed failures raised at component boundaries. Each class carries the
context needed to log or report the failure (feed source, trading date,
record key) without parsing the message.
"""

from datetime import date as date_type


class TwQuantError(Exception):
    """Base exception for all tw-quant errors."""

    pass


class FeedUnavailable(TwQuantError):
    """A market data feed could not serve a dataset for a date.

    Recovered locally: the task for that date is skipped and logged.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        status_code: int | None = None,
        endpoint: str | None = None,
        date: str | None = None,
    ):
        super().__init__(message)
        self.source = source
        self.status_code = status_code
        self.endpoint = endpoint
        self.date = date


class FeedRateLimited(FeedUnavailable):
    """429 - The feed throttled the request."""

    def __init__(self, message: str, retry_after: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class HolidayOracleUnavailable(TwQuantError):
    """The external holiday calendar could not be queried."""

    def __init__(self, message: str, source_url: str | None = None):
        super().__init__(message)
        self.source_url = source_url


class NoTradingDayFound(TwQuantError):
    """No trading day exists within the bounded calendar walk."""

    def __init__(self, message: str, start: date_type, max_days: int):
        super().__init__(message)
        self.start = start
        self.max_days = max_days


class StoreWriteFailure(TwQuantError):
    """The document store rejected a read-compare-write for one record."""

    def __init__(
        self,
        message: str,
        collection: str | None = None,
        key: dict | None = None,
    ):
        super().__init__(message)
        self.collection = collection
        self.key = key or {}


class InvalidRecordError(TwQuantError):
    """A record is missing its key or carries out-of-range values."""

    def __init__(self, message: str, record: dict | None = None):
        super().__init__(message)
        self.record = record or {}
