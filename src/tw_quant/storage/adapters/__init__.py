"""Document store adapters."""

from tw_quant.config.state import DatabaseConfig
from tw_quant.storage.adapters.memory import InMemoryDocumentStore
from tw_quant.storage.adapters.postgres import PostgresDocumentStore
from tw_quant.storage.ports import IDocumentStore


def create_document_store(config: DatabaseConfig) -> IDocumentStore:
    """Build the store named by the database URL scheme."""
    if config.url.startswith("memory://"):
        return InMemoryDocumentStore()
    return PostgresDocumentStore(
        dsn=config.url,
        collections=[
            config.tickers_collection,
            config.market_stats_collection,
            config.technical_indicators_collection,
        ],
        min_size=config.min_pool_size,
        max_size=config.max_pool_size,
        command_timeout=config.command_timeout,
    )


__all__ = [
    "InMemoryDocumentStore",
    "PostgresDocumentStore",
    "create_document_store",
]
