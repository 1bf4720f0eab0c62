import asyncio
import json
import random
import signal
import sys
from functools import partial

import structlog

from pgperf.api.metrics_server import MetricsServer
from pgperf.application.harness import TransferHarness
from pgperf.application.unit_of_work import open_unit_of_work
from pgperf.config import settings
from pgperf.domain.exceptions import AccountIntegrityError, ConservationError, ResourceUnavailableError
from pgperf.infrastructure.database import Database
from pgperf.logging import configure_logging


logger = structlog.get_logger()

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)

EXIT_CONSERVATION_VIOLATED = 1
EXIT_INTEGRITY_ERROR = 2
EXIT_RESOURCE_UNAVAILABLE = 3


async def main() -> int:
    configure_logging(
        level=settings.log_level,
        log_format=settings.log_format,
    )

    pool_size = max(settings.db_pool_size, settings.bench_workers + 1)
    logger.info(
        "starting_transfer_benchmark",
        database=settings.database_url.split("@")[-1],
        workers=settings.bench_workers,
        transfers=settings.bench_transfers,
        currency=settings.bench_currency,
        pool_size=pool_size,
        lock_timeout_ms=settings.db_lock_timeout_ms,
        metrics_enabled=settings.metrics_enabled,
    )

    database = Database(
        settings.database_url,
        pool_size=pool_size,
        pool_timeout=settings.db_pool_timeout_seconds,
        lock_timeout_ms=settings.db_lock_timeout_ms,
    )

    harness = TransferHarness(
        partial(open_unit_of_work, database),
        workers=settings.bench_workers,
        currency=settings.bench_currency,
        max_amount=settings.bench_max_amount,
        rng=random.Random(settings.bench_seed),
        shutdown_grace_seconds=settings.bench_shutdown_grace_seconds,
    )

    metrics_server: MetricsServer | None = None
    if settings.metrics_enabled:
        metrics_server = MetricsServer(
            host=settings.metrics_host,
            port=settings.metrics_port,
            progress=lambda: {**harness.stats.snapshot(), "connections_in_use": database.checked_out()},
        )
        await metrics_server.start()

    loop = asyncio.get_running_loop()

    def request_stop() -> None:
        logger.info("shutdown_signal_received")
        harness.stop()

    for sig in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, request_stop)

    try:
        with structlog.contextvars.bound_contextvars(
            currency=settings.bench_currency,
            workers=settings.bench_workers,
        ):
            report = await harness.run(
                settings.bench_transfers,
                min_balance=settings.bench_min_balance,
            )
    except ConservationError as e:
        logger.critical("benchmark_failed", error=str(e))
        return EXIT_CONSERVATION_VIOLATED
    except AccountIntegrityError as e:
        logger.critical("benchmark_aborted", error=str(e))
        return EXIT_INTEGRITY_ERROR
    except ResourceUnavailableError as e:
        logger.error("benchmark_aborted", reason=e.reason, error=str(e))
        return EXIT_RESOURCE_UNAVAILABLE
    finally:
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
        if metrics_server:
            await metrics_server.stop()
        await database.close()

    json.dump(report.as_dict(), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def run() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
