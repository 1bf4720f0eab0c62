import random
from collections.abc import Iterable
from decimal import Decimal

import structlog

from pgperf.application.unit_of_work import UnitOfWork
from pgperf.domain.models import Account, Currency, User


logger = structlog.get_logger()

# Upper bound of the random opening balance per currency.
SEED_AMOUNT_SCALE = {
    Currency.BTC.value: Decimal(1),
    Currency.ETH.value: Decimal(10),
    Currency.PTU.value: Decimal(50000),
    Currency.IDRT.value: Decimal(300000000),
}

AMOUNT_QUANTUM = Decimal("0.00000001")


def random_amount(rng: random.Random, currency: str) -> Decimal:
    fraction = Decimal(str(rng.random()))
    return (fraction * SEED_AMOUNT_SCALE[currency]).quantize(AMOUNT_QUANTUM)


async def seed_accounts(
    uow: UnitOfWork,
    user_count: int,
    currencies: Iterable[str] = tuple(SEED_AMOUNT_SCALE),
    rng: random.Random | None = None,
    batch_size: int = 1000,
) -> int:
    """Insert users ``1..user_count`` and one account per user per currency.

    Commits once at the end. Returns the number of accounts created.
    """
    rng = rng or random.Random()
    currencies = list(currencies)
    created = 0

    for start in range(1, user_count + 1, batch_size):
        user_ids = range(start, min(start + batch_size, user_count + 1))
        await uow.users.add_many([User(id=user_id, name=f"user {user_id}") for user_id in user_ids])
        accounts = [
            Account(id=None, user_id=user_id, currency=currency, amount=random_amount(rng, currency))
            for user_id in user_ids
            for currency in currencies
        ]
        await uow.accounts.add_many(accounts)
        created += len(accounts)
        logger.debug("seed_batch_inserted", users=len(user_ids), accounts=len(accounts))

    await uow.commit()
    logger.info("seed_completed", users=user_count, accounts=created, currencies=currencies)
    return created
