"""Public-holiday calendar source.

Reads the government open-data calendar, a JSON list of
``{"date": "YYYY/MM/DD", "isholiday": "是" | "否", ...}`` rows.
"""

import asyncio

import aiohttp

from tw_quant.ingestion.ports.http import IHttpClient
from tw_quant.shared.exceptions import HolidayOracleUnavailable

HOLIDAY_FLAG = "是"


class HttpHolidayCalendarSource:
    """IHolidayCalendarSource over HTTP."""

    def __init__(self, http_client: IHttpClient, url: str, timeout: float = 5.0, page_size: int = 5000):
        self._http = http_client
        self._url = url
        self._timeout = timeout
        self._page_size = page_size

    async def fetch_holiday_table(self) -> dict[str, bool]:
        try:
            response = await self._http.get(
                self._url, params={"size": self._page_size}, timeout=self._timeout
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
            raise HolidayOracleUnavailable(f"Holiday calendar request failed: {e}", source_url=self._url) from e

        if response.status_code != 200 or not isinstance(response.body, list):
            raise HolidayOracleUnavailable(
                f"Unexpected holiday calendar response (status {response.status_code})",
                source_url=self._url,
            )

        table: dict[str, bool] = {}
        for row in response.body:
            if not isinstance(row, dict) or not row.get("date"):
                continue
            day = str(row["date"]).strip().replace("/", "-")
            table[day] = row.get("isholiday") == HOLIDAY_FLAG
        return table
