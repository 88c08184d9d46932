"""
Feed Error Mapper

Turns a non-200 feed response into a FeedUnavailable (or FeedRateLimited
for 429) whose message names the endpoint and the upstream reason.
"""

from typing import Any

from tw_quant.shared.exceptions import FeedRateLimited, FeedUnavailable

STATUS_MESSAGES = {
    400: "Rejected request",
    404: "Dataset not found",
    429: "Rate limit exceeded",
}


class FeedErrorMapper:
    """Maps HTTP status codes to feed exceptions."""

    @staticmethod
    def extract_error_message(response_body: Any) -> str:
        """Best-effort reason from a JSON envelope or a text body."""
        if isinstance(response_body, dict):
            for key in ("error", "message", "stat"):
                if response_body.get(key):
                    return str(response_body[key])
            return str(response_body)
        if isinstance(response_body, str):
            return response_body[:200]
        return "" if response_body is None else str(response_body)

    @staticmethod
    def map_error(
        status_code: int,
        response_body: Any,
        endpoint: str,
        source: str,
        date: str | None = None,
        retry_after: str | None = None,
    ) -> FeedUnavailable:
        """
        Args:
            status_code: HTTP status code
            response_body: Decoded body or raw text
            endpoint: URL that was called
            source: Feed name (twse, tpex, taifex)
            date: Trading date requested
            retry_after: Retry-After header, seconds

        Returns:
            FeedRateLimited for 429, FeedUnavailable otherwise
        """
        if status_code >= 500:
            prefix = f"Server error {status_code}"
        else:
            prefix = STATUS_MESSAGES.get(status_code, f"Unexpected status {status_code}")
        message = f"{prefix} for {endpoint}: {FeedErrorMapper.extract_error_message(response_body)}"
        context = {"source": source, "status_code": status_code, "endpoint": endpoint, "date": date}

        if status_code == 429:
            seconds = int(retry_after) if retry_after and retry_after.isdigit() else None
            return FeedRateLimited(message, retry_after=seconds, **context)
        return FeedUnavailable(message, **context)
