"""Application layer - transfer engine, benchmark harness and seeding."""

from pgperf.application.harness import BenchmarkReport, BenchmarkStats, TransferHarness
from pgperf.application.services import TransferService
from pgperf.application.unit_of_work import UnitOfWork, open_unit_of_work


__all__ = [
    "BenchmarkReport",
    "BenchmarkStats",
    "TransferHarness",
    "TransferService",
    "UnitOfWork",
    "open_unit_of_work",
]
