from .feeds import IMarketFeed, MarketStatsDataset, Row, TickerDataset
from .http import HttpResponse, IHttpClient

__all__ = [
    "HttpResponse",
    "IHttpClient",
    "IMarketFeed",
    "MarketStatsDataset",
    "Row",
    "TickerDataset",
]
