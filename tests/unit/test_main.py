"""Unit tests for the benchmark entry point."""

import asyncio
import json
import os
import signal
from collections.abc import Iterator
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import structlog

from pgperf import main as entry_point
from pgperf.config import settings
from pgperf.domain.exceptions import AccountIntegrityError, ConservationError, ResourceUnavailableError


@pytest.fixture
def harness() -> MagicMock:
    harness = MagicMock()
    report = MagicMock()
    report.as_dict.return_value = {"committed": 3, "total_after": "150"}
    harness.run = AsyncMock(return_value=report)
    return harness


@pytest.fixture
def database() -> MagicMock:
    database = MagicMock()
    database.close = AsyncMock()
    return database


@pytest.fixture(autouse=True)
def patched(harness: MagicMock, database: MagicMock, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(settings, "metrics_enabled", False)
    monkeypatch.setattr(settings, "bench_workers", 4)
    monkeypatch.setattr(settings, "bench_currency", "IDRT")
    with (
        patch("pgperf.main.configure_logging"),
        patch("pgperf.main.Database", return_value=database),
        patch("pgperf.main.TransferHarness", return_value=harness),
    ):
        yield


class TestMain:
    async def test_prints_report_and_exits_zero(
        self, harness: MagicMock, database: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await entry_point.main() == 0

        assert json.loads(capsys.readouterr().out) == {"committed": 3, "total_after": "150"}
        harness.run.assert_awaited_once_with(settings.bench_transfers, min_balance=settings.bench_min_balance)
        database.close.assert_awaited_once()

    async def test_pool_holds_every_worker_and_the_driver(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "db_pool_size", 2)

        await entry_point.main()

        assert entry_point.Database.call_args.kwargs["pool_size"] == 5  # type: ignore[attr-defined]

    @pytest.mark.parametrize(
        ("error", "exit_code"),
        [
            (ConservationError("IDRT", Decimal(150), Decimal(151)), entry_point.EXIT_CONSERVATION_VIOLATED),
            (AccountIntegrityError(1, 0), entry_point.EXIT_INTEGRITY_ERROR),
            (ResourceUnavailableError("pool_exhausted"), entry_point.EXIT_RESOURCE_UNAVAILABLE),
        ],
    )
    async def test_failures_map_to_exit_codes(
        self, harness: MagicMock, database: MagicMock, error: Exception, exit_code: int
    ) -> None:
        harness.run.side_effect = error

        assert await entry_point.main() == exit_code
        database.close.assert_awaited_once()

    async def test_unavailable_database_is_logged_as_aborted(self, harness: MagicMock) -> None:
        harness.run.side_effect = ResourceUnavailableError("lock_timeout", "canceling statement due to lock timeout")

        with patch("pgperf.main.logger") as mock_logger:
            await entry_point.main()

        mock_logger.error.assert_called_once_with(
            "benchmark_aborted",
            reason="lock_timeout",
            error="Resource unavailable: lock_timeout (canceling statement due to lock timeout)",
        )

    async def test_run_is_logged_with_benchmark_context(self, harness: MagicMock) -> None:
        seen: dict[str, Any] = {}

        async def capture(*args: object, **kwargs: object) -> MagicMock:
            seen.update(structlog.contextvars.get_contextvars())
            return MagicMock(as_dict=MagicMock(return_value={}))

        harness.run.side_effect = capture

        await entry_point.main()

        assert seen == {"currency": "IDRT", "workers": 4}
        assert "currency" not in structlog.contextvars.get_contextvars()

    async def test_sigterm_stops_the_harness(self, harness: MagicMock) -> None:
        async def receive_signal(*args: object, **kwargs: object) -> MagicMock:
            os.kill(os.getpid(), signal.SIGTERM)
            await asyncio.sleep(0.1)
            return MagicMock(as_dict=MagicMock(return_value={}))

        harness.run.side_effect = receive_signal

        assert await entry_point.main() == 0
        harness.stop.assert_called_once_with()
