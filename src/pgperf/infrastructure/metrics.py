import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Gauge, Histogram


TRANSFER_ATTEMPTS_TOTAL = Counter(
    "transfer_attempts_total",
    "Total number of transfer attempts",
    ["outcome", "reason"],
)

TRANSFER_DURATION_SECONDS = Histogram(
    "transfer_duration_seconds",
    "Duration of one transfer attempt including commit or rollback",
    buckets=[0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

BENCHMARK_WORKERS_ACTIVE = Gauge(
    "benchmark_workers_active",
    "Number of background transfer workers currently running",
)

CONSERVATION_CHECKS_TOTAL = Counter(
    "conservation_checks_total",
    "Conservation checks performed at the end of a benchmark run",
    ["result"],
)


P = ParamSpec("P")
R = TypeVar("R")


def track_transfer_duration(
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            duration = time.perf_counter() - start
            TRANSFER_DURATION_SECONDS.observe(duration)

    return wrapper
