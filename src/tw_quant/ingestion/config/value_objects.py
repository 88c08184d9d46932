"""Configuration value objects for dependency injection.

Instead of injecting the whole ConfigState, the composition root hands each
feed component the small frozen dataclass it needs.
"""

from dataclasses import dataclass, field

from tw_quant.config.state import FeedEndpointConfig


@dataclass(frozen=True)
class HttpClientConfig:
    """Shared HTTP session settings."""

    timeout: float = 30.0
    verify_ssl: bool = True
    max_connections: int = 10
    user_agent: str = "tw-quant/0.1"


@dataclass(frozen=True)
class FeedEndpoint:
    """Where one feed serves its canonical datasets."""

    name: str  # twse, tpex, taifex
    base_url: str
    timeout: float = 30.0
    datasets: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, name: str, config: FeedEndpointConfig) -> "FeedEndpoint":
        return cls(
            name=name,
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout,
            datasets=dict(config.datasets),
        )

    def url_for(self, dataset: str) -> str:
        """Dataset URL. Unmapped datasets are served under their own name."""
        path = self.datasets.get(dataset, dataset).lstrip("/")
        return f"{self.base_url}/{path}"
