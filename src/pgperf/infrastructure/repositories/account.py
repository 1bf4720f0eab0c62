from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, cast

from sqlalchemy import CursorResult, Result, TextClause, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from pgperf.domain.exceptions import ResourceUnavailableError
from pgperf.domain.models import Account, LockedPair


# SQLSTATE -> ResourceUnavailableError.reason
LOCK_WAIT_SQLSTATES = {
    "55P03": "lock_timeout",
    "57014": "lock_wait_cancelled",
    "40P01": "deadlock_detected",
}

# Locks both rows in one statement. The inner select is ordered by id so
# concurrent transfers over the same pair always acquire row locks in the
# same order.
LOCK_PAIR_SQL = text("""
    SELECT max(CASE WHEN id = :from_id THEN amount END) AS from_amount,
           max(CASE WHEN id = :to_id THEN amount END) AS to_amount,
           count(DISTINCT currency) AS currency_count
    FROM (
        SELECT id, currency, amount
        FROM accounts
        WHERE id IN (:from_id, :to_id)
        ORDER BY id
        FOR UPDATE
    ) locked
""")

DEBIT_SQL = text("UPDATE accounts SET amount = amount - :amount WHERE id = :account_id")

CREDIT_SQL = text("UPDATE accounts SET amount = amount + :amount WHERE id = :account_id")


def _sqlstate(error: sa_exc.DBAPIError) -> str | None:
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


class AccountRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _execute(
        self,
        statement: TextClause,
        params: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    ) -> Result[Any]:
        try:
            return await self._session.execute(statement, params)
        except sa_exc.TimeoutError as e:
            raise ResourceUnavailableError("pool_exhausted", str(e)) from e
        except sa_exc.DBAPIError as e:
            reason = LOCK_WAIT_SQLSTATES.get(_sqlstate(e) or "")
            if reason is None:
                raise
            raise ResourceUnavailableError(reason, str(e.orig)) from e

    async def lock_pair(self, from_id: int, to_id: int) -> LockedPair:
        result = await self._execute(LOCK_PAIR_SQL, {"from_id": from_id, "to_id": to_id})
        row = result.one()
        return LockedPair(
            from_amount=row.from_amount,
            to_amount=row.to_amount,
            currency_count=row.currency_count,
        )

    async def debit(self, account_id: int, amount: Decimal) -> int:
        result = cast("CursorResult[Any]", await self._execute(DEBIT_SQL, {"account_id": account_id, "amount": amount}))
        return result.rowcount or 0

    async def credit(self, account_id: int, amount: Decimal) -> int:
        result = cast("CursorResult[Any]", await self._execute(CREDIT_SQL, {"account_id": account_id, "amount": amount}))
        return result.rowcount or 0

    async def get(self, account_id: int) -> Account | None:
        result = await self._execute(
            text("""
                SELECT id, user_id, currency, amount
                FROM accounts
                WHERE id = :id
            """),
            {"id": account_id},
        )
        row = result.fetchone()
        if not row:
            return None
        return Account(
            id=row.id,
            user_id=row.user_id,
            currency=row.currency,
            amount=row.amount,
        )

    async def add(self, account: Account) -> int:
        result = await self._execute(
            text("""
                INSERT INTO accounts (user_id, currency, amount)
                VALUES (:user_id, :currency, :amount)
                RETURNING id
            """),
            {
                "user_id": account.user_id,
                "currency": account.currency,
                "amount": account.amount,
            },
        )
        account_id: int = result.scalar_one()
        account.id = account_id
        return account_id

    async def add_many(self, accounts: Sequence[Account]) -> None:
        if not accounts:
            return
        await self._execute(
            text("""
                INSERT INTO accounts (user_id, currency, amount)
                VALUES (:user_id, :currency, :amount)
            """),
            [
                {
                    "user_id": account.user_id,
                    "currency": account.currency,
                    "amount": account.amount,
                }
                for account in accounts
            ],
        )

    async def total_amount(self, currency: str) -> Decimal:
        result = await self._execute(
            text("SELECT COALESCE(SUM(amount), 0) FROM accounts WHERE currency = :currency"),
            {"currency": currency},
        )
        return Decimal(result.scalar_one())

    async def eligible_ids(self, currency: str, min_amount: Decimal) -> list[int]:
        result = await self._execute(
            text("""
                SELECT id
                FROM accounts
                WHERE currency = :currency AND amount > :min_amount
                ORDER BY id
            """),
            {"currency": currency, "min_amount": min_amount},
        )
        return list(result.scalars().all())
