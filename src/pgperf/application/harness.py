import asyncio
import contextlib
import random
import time
from collections import Counter
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from pgperf.application.services import TransferService
from pgperf.application.unit_of_work import UnitOfWork
from pgperf.domain.exceptions import ConservationError, ResourceUnavailableError, TransferRejectedError
from pgperf.infrastructure.metrics import (
    BENCHMARK_WORKERS_ACTIVE,
    CONSERVATION_CHECKS_TOTAL,
    TRANSFER_ATTEMPTS_TOTAL,
    track_transfer_duration,
)


logger = structlog.get_logger()

UnitOfWorkFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]


@dataclass
class BenchmarkStats:
    committed: int = 0
    rejected: Counter[str] = field(default_factory=Counter)
    unavailable: Counter[str] = field(default_factory=Counter)

    @property
    def attempts(self) -> int:
        return self.committed + self.rejected.total() + self.unavailable.total()

    def snapshot(self) -> dict[str, Any]:
        return {
            "attempts": self.attempts,
            "committed": self.committed,
            "rejected": dict(self.rejected),
            "unavailable": dict(self.unavailable),
        }


@dataclass(frozen=True)
class BenchmarkReport:
    currency: str
    workers: int
    accounts: int
    driver_transfers: int
    attempts: int
    committed: int
    rejected: dict[str, int]
    unavailable: dict[str, int]
    elapsed_seconds: float
    total_before: Decimal
    total_after: Decimal

    @property
    def attempts_per_second(self) -> float:
        return self.attempts / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0

    @property
    def commits_per_second(self) -> float:
        return self.committed / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "currency": self.currency,
            "workers": self.workers,
            "accounts": self.accounts,
            "driver_transfers": self.driver_transfers,
            "attempts": self.attempts,
            "committed": self.committed,
            "rejected": self.rejected,
            "unavailable": self.unavailable,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "attempts_per_second": round(self.attempts_per_second, 1),
            "commits_per_second": round(self.commits_per_second, 1),
            "total_before": str(self.total_before),
            "total_after": str(self.total_after),
        }


class TransferHarness:
    """
    Drives concurrent transfers over a pool of accounts of one currency.

    Every run starts ``workers`` background tasks plus the foreground driver,
    so ``workers + 1`` transfers can be in flight at once. Each attempt opens
    its own unit of work from ``uow_factory``, commits on success and rolls
    back on any rejection. The per-currency total is read before and after
    the run; a difference raises ``ConservationError``.

    Cancellation is cooperative: ``stop()`` sets an event that every loop
    checks between attempts, never in the middle of one.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        workers: int = 8,
        currency: str = "IDRT",
        max_amount: int = 10,
        rng: random.Random | None = None,
        shutdown_grace_seconds: float = 10.0,
    ) -> None:
        if workers < 0:
            raise ValueError("workers cannot be negative")
        if max_amount < 0:
            raise ValueError("max_amount cannot be negative")

        self._uow_factory = uow_factory
        self._workers = workers
        self._currency = currency
        self._max_amount = max_amount
        self._rng = rng or random.Random()
        self._shutdown_grace = shutdown_grace_seconds
        self._cancel = asyncio.Event()
        self.stats = BenchmarkStats()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def stop(self) -> None:
        """Ask the current run to finish after the attempts in flight."""
        self._cancel.set()

    async def run(
        self,
        transfers: int,
        account_ids: Sequence[int] | None = None,
        min_balance: Decimal = Decimal(0),
    ) -> BenchmarkReport:
        # Reset before the first await; a stop() during setup must survive it.
        self._cancel.clear()
        self.stats = BenchmarkStats()

        if account_ids is None:
            account_ids = await self._eligible_accounts(min_balance)
        ids = sorted(set(account_ids))
        if len(ids) < 2:
            raise ValueError(f"Need at least two distinct {self._currency} accounts, got {len(ids)}")

        log = logger.bind(currency=self._currency, workers=self._workers, accounts=len(ids))

        total_before = await self._total_amount()
        log.info(
            "benchmark_started",
            transfers=transfers,
            total_before=str(total_before),
            stop_requested=self._cancel.is_set(),
        )

        failures: list[BaseException] = []
        tasks = [
            asyncio.create_task(self._worker(n, ids, failures), name=f"transfer-worker-{n}")
            for n in range(self._workers)
        ]

        driver_transfers = 0
        start = time.perf_counter()
        try:
            for _ in range(transfers):
                if self._cancel.is_set():
                    break
                await self._transfer_once(ids)
                driver_transfers += 1
        finally:
            self._cancel.set()
            elapsed = time.perf_counter() - start
            await self._shutdown_workers(tasks)

        if failures:
            raise failures[0]

        total_after = await self._total_amount()
        if total_after != total_before:
            CONSERVATION_CHECKS_TOTAL.labels(result="failed").inc()
            log.critical(
                "conservation_violated",
                total_before=str(total_before),
                total_after=str(total_after),
            )
            raise ConservationError(self._currency, total_before, total_after)
        CONSERVATION_CHECKS_TOTAL.labels(result="passed").inc()

        report = BenchmarkReport(
            currency=self._currency,
            workers=self._workers,
            accounts=len(ids),
            driver_transfers=driver_transfers,
            attempts=self.stats.attempts,
            committed=self.stats.committed,
            rejected=dict(self.stats.rejected),
            unavailable=dict(self.stats.unavailable),
            elapsed_seconds=elapsed,
            total_before=total_before,
            total_after=total_after,
        )
        log.info("benchmark_completed", **report.as_dict())
        return report

    async def _worker(self, n: int, ids: Sequence[int], failures: list[BaseException]) -> None:
        BENCHMARK_WORKERS_ACTIVE.inc()
        try:
            while not self._cancel.is_set():
                await self._transfer_once(ids)
        except Exception as e:
            failures.append(e)
            self._cancel.set()
            logger.error("transfer_worker_failed", worker=n, error=str(e), exc_info=True)
        finally:
            BENCHMARK_WORKERS_ACTIVE.dec()

    async def _shutdown_workers(self, tasks: list[asyncio.Task[None]]) -> None:
        if not tasks:
            return

        _, pending = await asyncio.wait(tasks, timeout=self._shutdown_grace)
        if pending:
            logger.warning("transfer_workers_cancelled", count=len(pending))
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    @track_transfer_duration
    async def _transfer_once(self, ids: Sequence[int]) -> None:
        from_id, to_id = self._rng.sample(ids, 2)
        amount = Decimal(self._rng.randint(0, self._max_amount))

        try:
            async with self._uow_factory() as uow:
                try:
                    await TransferService(uow).transfer(from_id, to_id, amount)
                except TransferRejectedError as e:
                    await uow.rollback()
                    self._record("rejected", e.code)
                    return
                await uow.commit()
        except ResourceUnavailableError as e:
            self._record("unavailable", e.reason)
            return

        self._record("committed")

    def _record(self, outcome: str, reason: str = "") -> None:
        if outcome == "committed":
            self.stats.committed += 1
        elif outcome == "rejected":
            self.stats.rejected[reason] += 1
        else:
            self.stats.unavailable[reason] += 1
        TRANSFER_ATTEMPTS_TOTAL.labels(outcome=outcome, reason=reason).inc()

    async def _eligible_accounts(self, min_balance: Decimal) -> list[int]:
        async with self._uow_factory() as uow:
            return await uow.accounts.eligible_ids(self._currency, min_balance)

    async def _total_amount(self) -> Decimal:
        async with self._uow_factory() as uow:
            return await uow.accounts.total_amount(self._currency)
