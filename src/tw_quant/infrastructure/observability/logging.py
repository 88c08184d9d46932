"""
Structured logging for tw-quant.

Every record carries the same base context so one trading date can be
followed from the feed fetch to the indicator write:

    {
        "app": "tw-quant",
        "layer": "ingestion",
        "component": "update-task",
        "task": "twse_equities_quotes",
        "trading_date": "2024-03-06",
        "event": "task_skipped_holiday",
        "severity": "INFO"
    }

Layers:
    - infrastructure: config, clock, HTTP client, document store
    - ingestion: feeds and update tasks (TWSE, TPEx, TAIFEX)
    - pipeline: daily update, backfill, scheduler
    - processing: calendar resolution and the indicator engine
    - storage: smart upsert repositories
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "tw-quant"

Layer = Literal["infrastructure", "ingestion", "pipeline", "processing", "storage"]

SEVERITY = {
    "debug": "DEBUG",
    "info": "INFO",
    "warning": "WARNING",
    "error": "ERROR",
    "critical": "CRITICAL",
}


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["app"] = APP_NAME
    return event_dict


def add_severity_level(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mirror the level as ``severity`` for log aggregators that expect it."""
    if level := event_dict.get("level"):
        event_dict["severity"] = SEVERITY.get(level, "INFO")
    return event_dict


def _processors(json_logs: bool, include_timestamp: bool) -> list[Processor]:
    processors: list[Processor] = []
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_log_level,
        add_severity_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if json_logs:
        # symbol names and holiday descriptions are often CJK
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        )
    return processors


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog on top of the standard library logging module.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL; unknown names fall back to INFO
        json_logs: JSON lines (production) or colored console output (dev)
        include_timestamp: Prefix each record with an ISO timestamp

    Usage:
        >>> setup_logging(**config.logging.model_dump())
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=_processors(json_logs, include_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def trading_date_context(date: str | None, **context: Any) -> Iterator[None]:
    """
    Bind ``trading_date`` (when known) and any extra keys to every record
    logged inside the block, including records from gathered tasks.
    """
    if date is not None:
        context["trading_date"] = date
    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_logger(
    name: str | None = None,
    layer: Layer | None = None,
    component: str | None = None,
    **initial_context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Logger with its architectural context bound.

    Args:
        name: Logger name, also bound as ``module``
        layer: Architectural layer
        component: Component inside the layer
        **initial_context: Extra keys bound on every record
    """
    context: dict[str, Any] = {}
    if layer:
        context["layer"] = layer
    if component:
        context["component"] = component
    if name:
        context["module"] = name
    context.update(initial_context)

    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


# ============================================================================
# Layer-Specific Logger Factories
# ============================================================================


def get_infrastructure_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Config, HTTP client and document store adapters."""
    return get_logger("infrastructure", layer="infrastructure", component=component, **context)


def get_ingestion_logger(
    component: str,
    source: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Feeds and update tasks.

    Usage:
        >>> log = get_ingestion_logger("http-feed", source="twse")
        >>> log.info("dataset_fetched", dataset="equities_quotes", rows=1024)
    """
    if source:
        context = {"source": source, **context}
    return get_logger("ingestion", layer="ingestion", component=component, **context)


def get_pipeline_logger(
    component: str = "scheduler",
    workflow: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """Workflows and the scheduler; ``workflow`` is bound when given."""
    if workflow:
        context = {"workflow": workflow, **context}
    return get_logger("pipeline", layer="pipeline", component=component, **context)


def get_processing_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    return get_logger("processing", layer="processing", component=component, **context)


def get_storage_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """
    Upsert repositories.

    Usage:
        >>> log = get_storage_logger("upsert-repository", collection="tickers")
        >>> log.info("batch_upserted", updated=60, skipped=40)
    """
    return get_logger("storage", layer="storage", component=component, **context)
