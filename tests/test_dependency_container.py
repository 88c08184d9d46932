"""
Smoke tests for the composition root with an in-memory store and fake feeds.
"""

import pytest

from tests.fakes import FakeFeed, SleepRecorder
from tw_quant.config.state import ConfigState, HolidaysConfig
from tw_quant.dependency_container import TwQuantContainer
from tw_quant.orchestration.ports import WorkflowStatus
from tw_quant.orchestration.workflows.backfill_workflow import BackfillRequest
from tw_quant.storage.adapters.memory import InMemoryDocumentStore


class ClosingHttpClient:
    def __init__(self):
        self.closed = False

    async def get(self, url, params=None, headers=None, timeout=None):
        raise AssertionError("no HTTP expected")

    async def close(self):
        self.closed = True


@pytest.fixture
def http_client() -> ClosingHttpClient:
    return ClosingHttpClient()


@pytest.fixture
def container(clock, http_client) -> TwQuantContainer:
    config = ConfigState(holidays=HolidaysConfig(source_url=None))
    feeds = {name: FakeFeed(name) for name in ("twse", "tpex", "taifex")}
    return TwQuantContainer(
        config=config,
        store=InMemoryDocumentStore(),
        clock=clock,
        http_client=http_client,
        feeds=feeds,
        sleep=SleepRecorder(),
    )


class TestTwQuantContainer:
    def test_every_task_is_addressable(self, container):
        assert len(container.ticker_tasks) == 10
        assert len(container.market_stats_tasks) == 9
        assert "twse_equities_quotes" in container.tasks
        assert "market_stats_usdtwd" in container.tasks

    def test_shared_calendar(self, container):
        assert container.ticker_resolver.oracle is container.market_stats_resolver.oracle
        assert container.ticker_resolver.cutoff_hour == 14
        assert container.market_stats_resolver.cutoff_hour == 15

    def test_scheduler_has_configured_jobs(self, container):
        scheduler = container.build_scheduler()
        assert set(scheduler.jobs) == set(container.config.schedule.jobs)

    def test_unknown_job_rejected(self, container):
        container.config.schedule.jobs["nightly_report"] = "0 23 * * *"
        with pytest.raises(ValueError, match="nightly_report"):
            container.build_scheduler()

    @pytest.mark.asyncio
    async def test_daily_update_end_to_end(self, container):
        container.feeds["twse"].responses[("equities_quotes", "2024-03-06")] = [
            {"symbol": "2330", "closePrice": 700.0}
        ]

        await container.start()
        result = await container.daily_update.run()

        assert result.date == "2024-03-06"
        assert result.status is WorkflowStatus.SUCCESS
        assert result.wrote == 1
        assert await container.ticker_repository.count() == 1

    @pytest.mark.asyncio
    async def test_backfill_and_compute(self, container):
        report = await container.backfill.run(BackfillRequest(dates=["2024-03-06"]))
        computed = await container.compute_indicators()

        assert report.status is WorkflowStatus.SUCCESS
        assert computed.date == "2024-03-06"

    @pytest.mark.asyncio
    async def test_close_releases_resources(self, container, http_client):
        await container.close()
        assert http_client.closed
