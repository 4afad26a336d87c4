"""
Script to create Universe events for every unprocessed source record
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.exceptions import SyncException
from core.logging import setup_logging
from ingestion.clients.universe_client import UniverseClient
from ingestion.runner import SyncRunner
from ingestion.sources import build_source

logger = logging.getLogger(__name__)


async def run_sync() -> int:
    """Run one sync; returns the process exit code"""

    logger.info("Starting Universe bulk event creation")

    try:
        source = build_source(settings)
    except SyncException as e:
        logger.error(f"Sync setup failed: {e}")
        return 1

    try:
        async with UniverseClient.from_settings(settings) as universe:
            runner = SyncRunner.from_settings(source, universe, settings)
            summary = await runner.run()

        logger.info(
            f"Sync finished: {summary.created} events created, {summary.errors} failed, "
            f"{summary.invalid} invalid ({summary.total_candidates} candidates in {summary.batches} batches)"
        )
        return 0

    except Exception as e:
        logger.error(f"Sync run failed: {str(e)}")
        return 1
    finally:
        await source.aclose()


if __name__ == "__main__":
    setup_logging(settings)
    sys.exit(asyncio.run(run_sync()))
