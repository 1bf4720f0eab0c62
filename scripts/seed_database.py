#!/usr/bin/env python3
"""Benchmark database seeding script.

Recreates the ``users`` and ``accounts`` tables and fills them with
``SEED_USER_COUNT`` users, each holding one account per currency with a
random opening balance.
"""
import asyncio
import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import structlog

from pgperf.application.seeding import seed_accounts
from pgperf.application.unit_of_work import open_unit_of_work
from pgperf.config import settings
from pgperf.infrastructure.database import Database
from pgperf.infrastructure.schema import create_schema, drop_schema
from pgperf.logging import configure_logging


logger = structlog.get_logger()


async def main() -> None:
    """Main entrypoint for seeding."""
    configure_logging(level=settings.log_level, log_format=settings.log_format)

    logger.info(
        "seeding_started",
        database=settings.database_url.split("@")[-1],
        users=settings.seed_user_count,
        batch_size=settings.seed_batch_size,
    )

    database = Database(settings.database_url, pool_size=1)
    try:
        await drop_schema(database.engine)
        await create_schema(database.engine)
        async with open_unit_of_work(database) as uow:
            await seed_accounts(
                uow,
                user_count=settings.seed_user_count,
                rng=random.Random(settings.bench_seed),
                batch_size=settings.seed_batch_size,
            )
    finally:
        await database.close()


if __name__ == "__main__":
    asyncio.run(main())
