"""Update tasks: holiday check, existence firewall, fetch, map, smart upsert."""

from .base import UpdateTask
from .market_stats_tasks import MARKET_STATS_TASK_SPECS, build_market_stats_tasks
from .ticker_tasks import (
    TICKER_GROUP_ORDER,
    build_ticker_tasks,
    ticker_groups,
    ticker_task_name,
)

__all__ = [
    "MARKET_STATS_TASK_SPECS",
    "TICKER_GROUP_ORDER",
    "UpdateTask",
    "build_market_stats_tasks",
    "build_ticker_tasks",
    "ticker_groups",
    "ticker_task_name",
]
