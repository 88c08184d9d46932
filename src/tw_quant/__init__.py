"""
Taiwan market data pipeline.

Modules:
- calendar: trading calendar and holiday oracle
- ingestion: feeds and update tasks
- storage: document store adapters and idempotent upsert repositories
- features: technical indicators, signals and the indicator engine
- orchestration: daily update, backfill and the scheduler
- infrastructure: clock, config paths, logging
"""

__version__ = "0.1.0"
