#!/usr/bin/env python3
"""Recompute technical indicators for a range or list of dates."""

import argparse
import asyncio
import json
import sys

from tw_quant.config.state import get_config
from tw_quant.dependency_container import TwQuantContainer
from tw_quant.infrastructure.observability import setup_logging
from tw_quant.orchestration.ports import WorkflowStatus
from tw_quant.orchestration.workflows.backfill_workflow import BackfillRequest


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--start", dest="start_date", help="First date YYYY-MM-DD")
    parser.add_argument("--end", dest="end_date", help="Last date YYYY-MM-DD (inclusive)")
    parser.add_argument("--dates", nargs="+", help="Explicit dates")
    parser.add_argument(
        "--missing", dest="discover_missing", action="store_true",
        help="Only dates with ticker rows but no indicator snapshots",
    )
    parser.add_argument(
        "--available-only", dest="only_available_dates", action="store_true",
        help="In range mode, only dates that have ticker rows",
    )
    parser.add_argument(
        "--ingest", dest="include_ingestion", action="store_true",
        help="Re-run the daily ingestion for each date first",
    )
    parser.add_argument("--force", action="store_true")
    parser.add_argument("--report-missing", action="store_true", help="Print the missing-dates report and exit")
    parser.add_argument("--config-dir")
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    config = get_config(args.config_dir)
    setup_logging(config.logging.level, config.logging.json_logs, config.logging.include_timestamp)

    container = TwQuantContainer(config)
    await container.start()
    try:
        if args.report_missing:
            report = await container.backfill.find_missing_dates()
            print(json.dumps(report.to_dict(), indent=2))
            return 0

        request = BackfillRequest(
            start_date=args.start_date,
            end_date=args.end_date,
            dates=args.dates,
            discover_missing=args.discover_missing,
            only_available_dates=args.only_available_dates,
            include_ingestion=args.include_ingestion,
            force=args.force,
        )
        report = await container.backfill.run(request)
        print(json.dumps(report.to_dict(), indent=2))
        return 0 if report.status is WorkflowStatus.SUCCESS else 1
    finally:
        await container.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
