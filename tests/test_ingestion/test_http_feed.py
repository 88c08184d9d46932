"""
Tests for the HTTP feed adapter and the holiday calendar source.
"""

import asyncio

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from tw_quant.calendar.holidays import HolidayOracle
from tw_quant.ingestion.adapters.holiday_calendar import HttpHolidayCalendarSource
from tw_quant.ingestion.adapters.http_feed import HttpMarketFeed
from tw_quant.ingestion.config.value_objects import FeedEndpoint
from tw_quant.ingestion.connectors.aiohttp_client import AiohttpClient
from tw_quant.ingestion.ports.http import HttpResponse
from tw_quant.shared.exceptions import FeedRateLimited, FeedUnavailable, HolidayOracleUnavailable


class StubHttpClient:
    """Returns a canned response (or raises) and records requests."""

    def __init__(self, status_code: int = 200, body=None, headers=None, error: Exception | None = None):
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}
        self.error = error
        self.requests: list[tuple[str, dict]] = []

    async def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append((url, params))
        if self.error:
            raise self.error
        return HttpResponse(status_code=self.status_code, body=self.body, headers=self.headers, url=url)

    async def close(self):
        pass


def make_feed(client: StubHttpClient) -> HttpMarketFeed:
    endpoint = FeedEndpoint(
        name="twse",
        base_url="http://normalizer/twse",
        datasets={"equities_quotes": "/stocks/quotes"},
    )
    return HttpMarketFeed(endpoint, client)


class TestHttpMarketFeed:
    @pytest.mark.asyncio
    async def test_routes_dataset_and_date(self):
        client = StubHttpClient(body=[{"symbol": "2330"}])

        rows = await make_feed(client).fetch("equities_quotes", "2024-03-06")

        assert rows == [{"symbol": "2330"}]
        assert client.requests == [("http://normalizer/twse/stocks/quotes", {"date": "2024-03-06"})]

    @pytest.mark.asyncio
    async def test_unmapped_dataset_uses_its_name(self):
        client = StubHttpClient(body=[])

        await make_feed(client).fetch("market_trades", "2024-03-06")

        assert client.requests[0][0] == "http://normalizer/twse/market_trades"

    @pytest.mark.asyncio
    async def test_envelope_is_unwrapped(self):
        client = StubHttpClient(body={"data": [{"symbol": "IX0001"}]})
        assert await make_feed(client).fetch("market_trades", "2024-03-06") == [{"symbol": "IX0001"}]

    @pytest.mark.parametrize(
        "status,body",
        [(204, None), (200, []), (200, {"data": []}), (200, {"stat": "no data"})],
    )
    @pytest.mark.asyncio
    async def test_nothing_published(self, status, body):
        client = StubHttpClient(status_code=status, body=body)
        assert await make_feed(client).fetch("market_trades", "2024-03-06") is None

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        client = StubHttpClient(body=["not", "rows"])

        with pytest.raises(FeedUnavailable, match="Malformed"):
            await make_feed(client).fetch("market_trades", "2024-03-06")

    @pytest.mark.asyncio
    async def test_server_error_is_mapped(self):
        client = StubHttpClient(status_code=503, body={"message": "maintenance"})

        with pytest.raises(FeedUnavailable) as exc_info:
            await make_feed(client).fetch("market_trades", "2024-03-06")

        assert exc_info.value.status_code == 503
        assert exc_info.value.source == "twse"
        assert "maintenance" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_rate_limit_carries_retry_after(self):
        client = StubHttpClient(status_code=429, body="slow down", headers={"Retry-After": "30"})

        with pytest.raises(FeedRateLimited) as exc_info:
            await make_feed(client).fetch("market_trades", "2024-03-06")

        assert exc_info.value.retry_after == 30

    @pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()])
    @pytest.mark.asyncio
    async def test_transport_errors_become_unavailable(self, error):
        client = StubHttpClient(error=error)

        with pytest.raises(FeedUnavailable):
            await make_feed(client).fetch("market_trades", "2024-03-06")


class TestHttpHolidayCalendarSource:
    @pytest.mark.asyncio
    async def test_parses_open_data_rows(self):
        client = StubHttpClient(
            body=[
                {"date": "2024/02/28", "name": "和平紀念日", "isholiday": "是"},
                {"date": "2024/03/02", "isholiday": "否"},
                {"name": "no date"},
            ]
        )
        source = HttpHolidayCalendarSource(client, "http://calendar/json")

        table = await source.fetch_holiday_table()

        assert table == {"2024-02-28": True, "2024-03-02": False}
        assert client.requests[0][1] == {"size": 5000}

    @pytest.mark.asyncio
    async def test_bad_status_raises(self):
        source = HttpHolidayCalendarSource(StubHttpClient(status_code=500, body="down"), "http://calendar/json")

        with pytest.raises(HolidayOracleUnavailable):
            await source.fetch_holiday_table()

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        client = StubHttpClient(error=aiohttp.ClientConnectionError("refused"))
        source = HttpHolidayCalendarSource(client, "http://calendar/json")

        with pytest.raises(HolidayOracleUnavailable):
            await source.fetch_holiday_table()

    @pytest.mark.asyncio
    async def test_undecodable_body_raises(self):
        error = UnicodeDecodeError("utf-8", b"\xa7_", 0, 1, "invalid start byte")
        source = HttpHolidayCalendarSource(StubHttpClient(error=error), "http://calendar/json")

        with pytest.raises(HolidayOracleUnavailable):
            await source.fetch_holiday_table()


class TestUndecodableBody:
    @pytest.mark.asyncio
    async def test_feed_maps_to_unavailable(self):
        error = UnicodeDecodeError("utf-8", b"\xa7_", 0, 1, "invalid start byte")

        with pytest.raises(FeedUnavailable) as exc_info:
            await make_feed(StubHttpClient(error=error)).fetch("market_trades", "2024-03-06")

        assert exc_info.value.source == "twse"

    @pytest.mark.asyncio
    async def test_oracle_falls_back_over_real_client(self, holiday_cache):
        async def holidays(request):
            # Big5 bytes labelled as UTF-8
            body = b'[{"date": "2024/03/06", "isholiday": "\xa7_"}]'
            return web.Response(body=body, content_type="application/json", charset="utf-8")

        app = web.Application()
        app.router.add_get("/holidays", holidays)

        async with TestServer(app) as server:
            client = AiohttpClient()
            try:
                source = HttpHolidayCalendarSource(client, str(server.make_url("/holidays")))
                oracle = HolidayOracle(holiday_cache, source=source)

                assert await oracle.is_holiday("2024-03-06") is False
                assert await oracle.is_holiday("2024-03-09") is True
            finally:
                await client.close()
