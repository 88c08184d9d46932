"""
Observability for the ingestion and indicator pipeline. Every layer logs
through structlog with the same base context (app, layer, component) so a
single trading date can be followed from feed fetch to indicator write.
"""

from .logging import (
    get_infrastructure_logger,
    get_ingestion_logger,
    get_logger,
    get_pipeline_logger,
    get_processing_logger,
    get_storage_logger,
    setup_logging,
    trading_date_context,
)

__all__ = [
    "setup_logging",
    "trading_date_context",
    "get_logger",
    "get_infrastructure_logger",
    "get_ingestion_logger",
    "get_pipeline_logger",
    "get_processing_logger",
    "get_storage_logger",
]
