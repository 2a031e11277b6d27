#!/usr/bin/env python3
"""CLI script to send due abandoned cart reminders once, without Celery.

Usage:
    python scripts/dispatch_reminders.py [--limit 50]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import structlog

from checkout_service.config import get_settings
from checkout_service.logging_config import configure_logging
from email_worker.tasks.cart_abandonment import run_dispatch

logger = structlog.get_logger()


async def main(limit: int | None) -> None:
    """Run one dispatch pass."""
    settings = get_settings()
    configure_logging(settings)

    logger.info("Dispatching due abandoned cart reminders", email_service=settings.email_service)
    summary = await run_dispatch(settings, limit=limit)
    logger.info("Dispatch completed", **summary)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--limit", type=int, default=None, help="Maximum reminders to process")
    args = parser.parse_args()
    asyncio.run(main(args.limit))
