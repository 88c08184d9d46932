from .value_objects import FeedEndpoint, HttpClientConfig

__all__ = ["FeedEndpoint", "HttpClientConfig"]
