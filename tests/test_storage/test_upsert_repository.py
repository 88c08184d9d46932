"""
Tests for the idempotent upsert layer.
"""

import pytest

from tests.fakes import make_ticker, taipei
from tw_quant.shared.exceptions import StoreWriteFailure
from tw_quant.shared.models.enums import Exchange, WriteOutcome
from tw_quant.storage.adapters.memory import InMemoryDocumentStore
from tw_quant.storage.repositories.market_stats import MarketStatsRepository
from tw_quant.storage.repositories.ticker import TickerRepository
from tw_quant.storage.schemas.records import MarketStats, Ticker


class FlakyStore(InMemoryDocumentStore):
    """Rejects writes for the listed symbols."""

    def __init__(self, failing_symbols: set[str]):
        super().__init__()
        self.failing_symbols = failing_symbols

    async def upsert(self, collection, key, document):
        if key.get("symbol") in self.failing_symbols:
            raise ConnectionError("connection reset")
        await super().upsert(collection, key, document)


class TestUpsert:
    @pytest.mark.asyncio
    async def test_created_then_unchanged_then_updated(self, ticker_repository):
        record = make_ticker("2024-03-06", 780.0)

        assert await ticker_repository.upsert(record) is WriteOutcome.CREATED
        assert await ticker_repository.upsert(record) is WriteOutcome.UNCHANGED

        changed = record.model_copy(update={"close_price": 781.0})
        assert await ticker_repository.upsert(changed) is WriteOutcome.UPDATED

        stored = await ticker_repository.get(record.key())
        assert stored.close_price == 781.0

    @pytest.mark.asyncio
    async def test_stamps_move_only_on_real_change(self, ticker_repository, clock):
        record = make_ticker("2024-03-06", 780.0)
        await ticker_repository.upsert(record)
        first = await ticker_repository.get(record.key())

        clock.set(taipei(2024, 3, 6, 17, 0))
        await ticker_repository.upsert(record)
        unchanged = await ticker_repository.get(record.key())
        assert unchanged.updated_at == first.updated_at

        await ticker_repository.upsert(record.model_copy(update={"trade_volume": 5.0}))
        updated = await ticker_repository.get(record.key())
        assert updated.updated_at > first.updated_at
        assert updated.created_at == first.created_at

    @pytest.mark.asyncio
    async def test_partial_record_never_reverts_stored_fields(self, ticker_repository):
        await ticker_repository.upsert(make_ticker("2024-03-06", 780.0))
        flows = Ticker(
            date="2024-03-06",
            symbol="2330",
            exchange=Exchange.TWSE,
            fini_net_buy_sell=1200.0,
        )

        assert await ticker_repository.upsert(flows) is WriteOutcome.UPDATED
        assert await ticker_repository.upsert(flows) is WriteOutcome.UNCHANGED

        stored = await ticker_repository.get(flows.key())
        assert stored.close_price == 780.0
        assert stored.fini_net_buy_sell == 1200.0

    @pytest.mark.asyncio
    async def test_market_stats_slices_merge(self, market_stats_repository):
        await market_stats_repository.upsert(MarketStats(date="2024-03-06", taiex_price=19500.0))
        outcome = await market_stats_repository.upsert(MarketStats(date="2024-03-06", usdtwd=31.5))

        assert outcome is WriteOutcome.UPDATED
        stats = await market_stats_repository.get_by_date("2024-03-06")
        assert stats.taiex_price == 19500.0
        assert stats.usdtwd == 31.5

    @pytest.mark.asyncio
    async def test_store_error_becomes_store_write_failure(self, clock):
        repository = TickerRepository(FlakyStore({"2330"}), clock)

        with pytest.raises(StoreWriteFailure) as exc_info:
            await repository.upsert(make_ticker("2024-03-06", 780.0))

        assert exc_info.value.collection == "tickers"


class TestSmartBatchUpdate:
    @pytest.mark.asyncio
    async def test_counts_new_and_unchanged(self, ticker_repository):
        records = [make_ticker("2024-03-06", 100.0 + i, symbol=f"{1000 + i}") for i in range(100)]
        for record in records[:40]:
            await ticker_repository.upsert(record)

        result = await ticker_repository.smart_batch_update(records)

        assert (result.updated, result.skipped, result.total, result.failed) == (60, 40, 100, 0)

    @pytest.mark.asyncio
    async def test_rerun_is_all_skipped(self, ticker_repository):
        records = [make_ticker("2024-03-06", 50.0, symbol=s) for s in ("1101", "1102", "1103")]
        await ticker_repository.smart_batch_update(records)

        result = await ticker_repository.smart_batch_update(records)

        assert result.updated == 0
        assert result.skipped == 3

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, clock):
        repository = TickerRepository(FlakyStore({"1102"}), clock)
        records = [make_ticker("2024-03-06", 50.0, symbol=s) for s in ("1101", "1102", "1103")]

        result = await repository.smart_batch_update(records)

        assert result.updated == 2
        assert result.failed == 1
        assert len(result.errors) == 1
        assert result.to_dict()["total"] == 3
