#!/usr/bin/env python3
"""Run the daily update (tickers, market statistics, indicators) once."""

import argparse
import asyncio
import json
import sys

from tw_quant.config.state import get_config
from tw_quant.dependency_container import TwQuantContainer
from tw_quant.infrastructure.observability import get_pipeline_logger, setup_logging
from tw_quant.orchestration.ports import WorkflowStatus


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--date", help="Trading date YYYY-MM-DD (default: resolved from the calendar)")
    parser.add_argument("--task", help="Run a single task by name, e.g. twse_equities_quotes")
    parser.add_argument("--force", action="store_true", help="Bypass the existence check")
    parser.add_argument("--skip-indicators", action="store_true")
    parser.add_argument("--config-dir", help="Config directory (default: TWQ_CONFIG_DIR or ./config)")
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    config = get_config(args.config_dir)
    setup_logging(config.logging.level, config.logging.json_logs, config.logging.include_timestamp)
    logger = get_pipeline_logger("cli", workflow="daily_update")

    container = TwQuantContainer(config)
    await container.start()
    try:
        if args.task:
            task = container.tasks.get(args.task)
            if task is None:
                logger.error("unknown_task", task=args.task, available=sorted(container.tasks))
                return 2
            wrote = await task(args.date, force=args.force)
            print(json.dumps({"task": args.task, "result": wrote}))
            return 0

        result = await container.daily_update.run(
            args.date, force=args.force, compute_indicators=not args.skip_indicators
        )
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return 0 if result.status in (WorkflowStatus.SUCCESS, WorkflowStatus.SKIPPED) else 1
    finally:
        await container.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
