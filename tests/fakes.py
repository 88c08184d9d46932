"""Test doubles shared by the test modules."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from tw_quant.infrastructure.ports.system import IClock
from tw_quant.ingestion.ports.feeds import Row
from tw_quant.shared.models.enums import Exchange, TickerType
from tw_quant.storage.schemas.records import Ticker

TAIPEI = ZoneInfo("Asia/Taipei")


class FixedClock(IClock):
    """Clock frozen at ``current`` (exchange-local) until moved."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def utcnow(self) -> datetime:
        return self.current.astimezone(UTC)

    def set(self, current: datetime) -> None:
        self.current = current


def taipei(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=TAIPEI)


class FakeFeed:
    """
    Feed returning canned rows per (dataset, date).

    A value may be a list of rows, None (no data) or an exception to raise.
    Every call is recorded in ``calls``.
    """

    def __init__(self, name: str, responses: dict | None = None):
        self.name = name
        self.responses = responses or {}
        self.calls: list[tuple[str, str]] = []

    async def fetch(self, dataset: str, date: str) -> list[Row] | None:
        self.calls.append((dataset, date))
        response = self.responses.get((dataset, date))
        if isinstance(response, Exception):
            raise response
        return response


class FakeHolidaySource:
    def __init__(self, table: dict[str, bool] | None = None, error: Exception | None = None):
        self.table = table or {}
        self.error = error
        self.calls = 0

    async def fetch_holiday_table(self) -> dict[str, bool]:
        self.calls += 1
        if self.error:
            raise self.error
        return dict(self.table)


class SleepRecorder:
    """No-op sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_ticker(
    date: str,
    close: float,
    symbol: str = "2330",
    exchange: Exchange = Exchange.TWSE,
    high: float | None = None,
    low: float | None = None,
    volume: float = 1000.0,
) -> Ticker:
    return Ticker(
        date=date,
        symbol=symbol,
        exchange=exchange,
        type=TickerType.EQUITY,
        market=exchange.market,
        name=f"name-{symbol}",
        open_price=close,
        high_price=high if high is not None else close + 1,
        low_price=low if low is not None else close - 1,
        close_price=close,
        trade_volume=volume,
        trade_value=close * volume,
    )
