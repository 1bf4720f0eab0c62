"""Shared pytest fixtures for transfer benchmark tests."""

import logging
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import structlog

from pgperf.application.unit_of_work import UnitOfWork
from pgperf.domain.models import Account, LockedPair
from tests.fakes import InMemoryLedger


@pytest.fixture(autouse=True, scope="session")
def quiet_logging() -> None:
    """Drop debug and info events; the harness tests run many thousands of transfers."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))


@pytest.fixture
def mock_account_repository() -> AsyncMock:
    """Create mock AccountRepository holding two IDRT accounts (100 and 50)."""
    repo = AsyncMock()
    repo.lock_pair = AsyncMock(
        return_value=LockedPair(from_amount=Decimal("100"), to_amount=Decimal("50"), currency_count=1)
    )
    repo.debit = AsyncMock(return_value=1)
    repo.credit = AsyncMock(return_value=1)
    repo.get = AsyncMock(return_value=None)
    repo.add = AsyncMock(return_value=1)
    repo.add_many = AsyncMock(return_value=None)
    repo.total_amount = AsyncMock(return_value=Decimal("150"))
    repo.eligible_ids = AsyncMock(return_value=[1, 2])
    return repo


@pytest.fixture
def mock_user_repository() -> AsyncMock:
    """Create mock UserRepository."""
    repo = AsyncMock()
    repo.get = AsyncMock(return_value=None)
    repo.add_many = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_uow(
    mock_account_repository: AsyncMock,
    mock_user_repository: AsyncMock,
) -> AsyncMock:
    """Create mock Unit of Work with all repositories."""
    uow = AsyncMock(spec=UnitOfWork)
    uow.accounts = mock_account_repository
    uow.users = mock_user_repository
    uow.commit = AsyncMock(return_value=None)
    uow.rollback = AsyncMock(return_value=None)

    # Configure async context manager
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=None)

    return uow


@pytest.fixture
def idrt_ledger() -> InMemoryLedger:
    """Two IDRT accounts holding 100 and 50, plus one BTC account."""
    return InMemoryLedger(
        [
            create_account(1, amount="100"),
            create_account(2, amount="50"),
            create_account(3, currency="BTC", amount="1.5"),
        ]
    )


def create_account(
    account_id: int | None,
    user_id: int = 1,
    currency: str = "IDRT",
    amount: str | Decimal = "0",
) -> Account:
    """Helper to create Account with custom values."""
    return Account(
        id=account_id,
        user_id=user_id,
        currency=currency,
        amount=Decimal(amount),
    )


def locked_pair(
    from_amount: str | None = "100",
    to_amount: str | None = "50",
    currency_count: int = 1,
) -> LockedPair:
    """Helper to create LockedPair with custom values."""
    return LockedPair(
        from_amount=Decimal(from_amount) if from_amount is not None else None,
        to_amount=Decimal(to_amount) if to_amount is not None else None,
        currency_count=currency_count,
    )
