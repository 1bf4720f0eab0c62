from decimal import Decimal

import structlog

from pgperf.application.unit_of_work import UnitOfWork
from pgperf.domain.exceptions import (
    AccountIntegrityError,
    AccountNotFoundError,
    CurrencyMismatchError,
    InsufficientBalanceError,
)
from pgperf.domain.models import TransferReceipt, TransferRequest


logger = structlog.get_logger()


class TransferService:
    """Moves value between two accounts under pessimistic row locks.

    The service runs inside the caller's unit of work and never commits,
    rolls back or retries. Business-rule failures raise a
    ``TransferRejectedError`` subclass before any row is modified; the caller
    must still roll back because the row locks are held until the
    transaction ends.
    """

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    async def transfer(self, from_account_id: int, to_account_id: int, amount: Decimal) -> TransferReceipt:
        request = TransferRequest(from_account_id, to_account_id, amount)
        log = logger.bind(
            from_account=request.from_account_id,
            to_account=request.to_account_id,
            amount=str(request.amount),
        )

        locked = await self.uow.accounts.lock_pair(request.from_account_id, request.to_account_id)
        log.debug(
            "transfer_locked",
            step="1/3",
            from_amount=str(locked.from_amount),
            to_amount=str(locked.to_amount),
            currency_count=locked.currency_count,
        )

        if locked.from_amount is None:
            raise AccountNotFoundError(request.from_account_id)
        if locked.to_amount is None:
            raise AccountNotFoundError(request.to_account_id)

        if locked.currency_count != 1:
            log.debug("transfer_rejected", reason=CurrencyMismatchError.code)
            raise CurrencyMismatchError(request.from_account_id, request.to_account_id)

        if locked.from_amount < request.amount:
            log.debug("transfer_rejected", reason=InsufficientBalanceError.code)
            raise InsufficientBalanceError(request.from_account_id, request.amount, locked.from_amount)

        rows = await self.uow.accounts.debit(request.from_account_id, request.amount)
        _ensure_single_row(request.from_account_id, rows, log)
        log.debug("transfer_debited", step="2/3")

        rows = await self.uow.accounts.credit(request.to_account_id, request.amount)
        _ensure_single_row(request.to_account_id, rows, log)
        log.debug("transfer_credited", step="3/3")

        return TransferReceipt(
            from_account_id=request.from_account_id,
            to_account_id=request.to_account_id,
            amount=request.amount,
            from_amount_after=locked.from_amount - request.amount,
            to_amount_after=locked.to_amount + request.amount,
        )


def _ensure_single_row(account_id: int, rows_affected: int, log: structlog.stdlib.BoundLogger) -> None:
    if rows_affected != 1:
        log.error("transfer_integrity_violation", account=account_id, rows_affected=rows_affected)
        raise AccountIntegrityError(account_id, rows_affected)
