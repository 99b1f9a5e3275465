#!/usr/bin/env python3
"""Create the plan tables and check that the seed rules and catalog load."""

import asyncio
import logging

from skinplan.catalog import load_snapshot
from skinplan.config import get_settings
from skinplan.database import engine, init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    settings = get_settings()
    snapshot = load_snapshot(settings.rules_path, settings.catalog_path)
    logger.info(f"Seed data: {len(snapshot.rules)} rules, {len(snapshot.products)} products")

    try:
        await init_db()
        logger.info(f"Plan tables ready at {settings.database_url}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
