"""
Shared fixtures: fixed clock, in-memory store, repositories and calendar.
"""

import pytest

from tests.fakes import FixedClock, SleepRecorder, taipei
from tw_quant.calendar.holidays import HolidayCache, HolidayOracle
from tw_quant.calendar.resolver import TradingCalendarResolver
from tw_quant.ingestion.feed_status import FeedStatusRegistry
from tw_quant.storage.adapters.memory import InMemoryDocumentStore
from tw_quant.storage.repositories.market_stats import MarketStatsRepository
from tw_quant.storage.repositories.technical_indicator import TechnicalIndicatorRepository
from tw_quant.storage.repositories.ticker import TickerRepository


@pytest.fixture
def clock() -> FixedClock:
    # Wednesday afternoon, after both cutoffs
    return FixedClock(taipei(2024, 3, 6, 16, 0))


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def ticker_repository(store, clock) -> TickerRepository:
    return TickerRepository(store, clock)


@pytest.fixture
def market_stats_repository(store, clock) -> MarketStatsRepository:
    return MarketStatsRepository(store, clock)


@pytest.fixture
def indicator_repository(store, clock) -> TechnicalIndicatorRepository:
    return TechnicalIndicatorRepository(store, clock)


@pytest.fixture
def holiday_cache(clock) -> HolidayCache:
    return HolidayCache(clock)


@pytest.fixture
def oracle(holiday_cache) -> HolidayOracle:
    # 2024-02-28 Peace Memorial Day, 2024-04-04/05 Children's Day + Tomb Sweeping
    return HolidayOracle(holiday_cache, known_holidays=["2024-02-28", "2024-04-04", "2024-04-05"])


@pytest.fixture
def resolver(oracle, clock) -> TradingCalendarResolver:
    return TradingCalendarResolver(oracle, clock, cutoff_hour=14)


@pytest.fixture
def feed_status() -> FeedStatusRegistry:
    return FeedStatusRegistry()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()
