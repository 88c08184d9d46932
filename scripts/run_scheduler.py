#!/usr/bin/env python3
"""Run the in-process scheduler until interrupted."""

import argparse
import asyncio
import signal
import sys

from tw_quant.config.state import get_config
from tw_quant.dependency_container import TwQuantContainer
from tw_quant.infrastructure.observability import get_pipeline_logger, setup_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config-dir")
    parser.add_argument("--list", action="store_true", help="Print the job table and exit")
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    config = get_config(args.config_dir)
    setup_logging(config.logging.level, config.logging.json_logs, config.logging.include_timestamp)
    logger = get_pipeline_logger("scheduler-cli")

    container = TwQuantContainer(config)
    scheduler = container.build_scheduler()
    if args.list:
        for name, expr in config.schedule.jobs.items():
            print(f"{name:<40} {expr}")
        return 0

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, container.cancel_token.cancel)

    await container.start()
    try:
        await scheduler.run_forever(container.cancel_token)
    finally:
        await container.close()
        logger.info("shutdown_complete")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
