"""HTTP transport port.

Feeds and the holiday source only see ``IHttpClient``; status handling and
payload validation stay in the adapters, so tests swap in a stub transport.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class HttpResponse:
    status_code: int
    # decoded JSON on 200, raw text (or None when empty) otherwise
    body: Any
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""


class IHttpClient(Protocol):
    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """
        Issue a GET request.

        Raises:
            aiohttp.ClientError: On connection failures
            asyncio.TimeoutError: When ``timeout`` (seconds) elapses
            UnicodeDecodeError: When the body does not match its declared charset
        """
        ...

    async def close(self) -> None: ...
