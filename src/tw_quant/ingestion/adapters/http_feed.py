"""HTTP market feed adapter.

Requests ``GET {base_url}/{dataset_path}?date=YYYY-MM-DD`` from a normalizer
service and accepts either a bare JSON list of rows or an envelope
``{"data": [...]}``. An empty list, an empty envelope or a 204 means
nothing is published for that date.
"""

import asyncio
from typing import Any

import aiohttp

from tw_quant.infrastructure.observability import get_ingestion_logger
from tw_quant.ingestion.adapters.error_mapper import FeedErrorMapper
from tw_quant.ingestion.config.value_objects import FeedEndpoint
from tw_quant.ingestion.ports.feeds import Row
from tw_quant.ingestion.ports.http import IHttpClient
from tw_quant.shared.exceptions import FeedUnavailable


class HttpMarketFeed:
    """IMarketFeed backed by an HTTP endpoint."""

    def __init__(self, endpoint: FeedEndpoint, http_client: IHttpClient):
        self.endpoint = endpoint
        self.name = endpoint.name
        self._http = http_client
        self._log = get_ingestion_logger("http-feed", source=endpoint.name)

    def _unwrap(self, body: Any, url: str, date: str) -> list[Row] | None:
        if body is None:
            return None
        if isinstance(body, dict):
            body = body.get("data")
            if body is None:
                return None
        if not isinstance(body, list) or not all(isinstance(row, dict) for row in body):
            raise FeedUnavailable(
                f"Malformed payload from {url}: expected a list of rows",
                source=self.name,
                endpoint=url,
                date=date,
            )
        return body or None

    async def fetch(self, dataset: str, date: str) -> list[Row] | None:
        url = self.endpoint.url_for(dataset)
        try:
            response = await self._http.get(
                url, params={"date": date}, timeout=self.endpoint.timeout
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
            raise FeedUnavailable(
                f"Request to {url} failed: {e}",
                source=self.name,
                endpoint=url,
                date=date,
            ) from e

        if response.status_code == 204:
            return None
        if response.status_code != 200:
            raise FeedErrorMapper.map_error(
                status_code=response.status_code,
                response_body=response.body,
                endpoint=url,
                source=self.name,
                date=date,
                retry_after=response.headers.get("Retry-After"),
            )

        rows = self._unwrap(response.body, url, date)
        self._log.debug("dataset_fetched", dataset=dataset, date=date, rows=len(rows or []))
        return rows
