from .date_utils import (
    DateLike,
    add_days,
    date_range,
    format_date,
    is_weekend,
    iter_dates,
    parse_date,
)

__all__ = [
    "DateLike",
    "add_days",
    "date_range",
    "format_date",
    "is_weekend",
    "iter_dates",
    "parse_date",
]
