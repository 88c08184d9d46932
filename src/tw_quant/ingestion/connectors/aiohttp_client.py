"""aiohttp implementation of IHttpClient.

One session is shared by every feed and the holiday source, created lazily
on the first request so the container can be built outside a running loop.
"""

import json
from typing import Any

import aiohttp

from tw_quant.infrastructure.observability import get_infrastructure_logger
from tw_quant.ingestion.config.value_objects import HttpClientConfig
from tw_quant.ingestion.ports.http import HttpResponse, IHttpClient

logger = get_infrastructure_logger("http-client")


class AiohttpClient(IHttpClient):
    def __init__(self, config: HttpClientConfig | None = None):
        self.config = config or HttpClientConfig()
        self._session: aiohttp.ClientSession | None = None

    def _session_or_new(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                connector=aiohttp.TCPConnector(
                    limit=self.config.max_connections,
                    ssl=None if self.config.verify_ssl else False,
                ),
                headers={"User-Agent": self.config.user_agent, "Accept": "application/json"},
            )
            logger.debug("session_opened", max_connections=self.config.max_connections)
        return self._session

    @staticmethod
    async def _read_body(resp: aiohttp.ClientResponse) -> Any:
        try:
            text = await resp.text()
        except UnicodeDecodeError as e:
            logger.warning("http_body_undecodable", url=str(resp.url), status=resp.status, error=str(e))
            raise
        if resp.status != 200 or not text:
            return text or None
        # open-data endpoints often label JSON as text/html
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        session = self._session_or_new()
        request_timeout = aiohttp.ClientTimeout(total=timeout or self.config.timeout)

        async with session.get(url, params=params, headers=headers, timeout=request_timeout) as resp:
            body = await self._read_body(resp)
            logger.debug("http_get", url=url, params=params, status=resp.status)
            return HttpResponse(
                status_code=resp.status,
                body=body,
                headers=dict(resp.headers),
                url=str(resp.url),
            )

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.debug("session_closed")
