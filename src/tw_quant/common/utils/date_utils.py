"""
Date Utilities
==============

Trading dates travel through the system as ISO ``YYYY-MM-DD`` strings. These
helpers convert between strings, ``date`` objects and datetimes.
"""

from collections.abc import Iterator
from datetime import date, datetime, timedelta

DateLike = str | date | datetime


def parse_date(value: DateLike) -> date:
    """
    Parse an ISO date string, date or datetime into a ``date``.

    Args:
        value: ``YYYY-MM-DD`` string, ``date`` or ``datetime``

    Returns:
        Calendar date

    Raises:
        ValueError: If a string is not a valid ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def format_date(value: DateLike) -> str:
    """Render a date-like value as ``YYYY-MM-DD``."""
    return parse_date(value).isoformat()


def is_weekend(value: DateLike) -> bool:
    """Saturday or Sunday."""
    return parse_date(value).weekday() >= 5


def add_days(value: DateLike, days: int) -> str:
    return (parse_date(value) + timedelta(days=days)).isoformat()


def iter_dates(start: DateLike, end: DateLike) -> Iterator[str]:
    """
    Yield every calendar date between start and end.

    Args:
        start: First date
        end: Last date (inclusive)

    Returns:
        Iterator of ``YYYY-MM-DD`` strings, empty when start is after end
    """
    current = parse_date(start)
    last = parse_date(end)
    while current <= last:
        yield current.isoformat()
        current += timedelta(days=1)


def date_range(start: DateLike, end: DateLike) -> list[str]:
    """Inclusive list of ``YYYY-MM-DD`` strings."""
    return list(iter_dates(start, end))
