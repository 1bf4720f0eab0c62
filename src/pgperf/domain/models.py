from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from pgperf.domain.exceptions import InvalidAmountError, SameAccountError


class Currency(Enum):
    BTC = "BTC"
    ETH = "ETH"
    PTU = "PTU"
    IDRT = "IDRT"


SUPPORTED_CURRENCIES = frozenset(c.value for c in Currency)


@dataclass(frozen=True)
class User:
    id: int
    name: str


@dataclass
class Account:
    id: int | None
    user_id: int
    currency: str
    amount: Decimal

    def __post_init__(self) -> None:
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")
        if not isinstance(self.amount, Decimal):
            raise ValueError("Amount must be a Decimal")


@dataclass(frozen=True)
class TransferRequest:
    from_account_id: int
    to_account_id: int
    amount: Decimal

    def __post_init__(self) -> None:
        if self.from_account_id == self.to_account_id:
            raise SameAccountError(self.from_account_id)
        if not isinstance(self.amount, Decimal):
            raise InvalidAmountError(self.amount, "must be a Decimal")
        if not self.amount.is_finite():
            raise InvalidAmountError(self.amount, "must be finite")
        if self.amount < 0:
            raise InvalidAmountError(self.amount, "cannot be negative")


@dataclass(frozen=True)
class LockedPair:
    """Pre-image of both accounts, read while holding their row locks.

    An amount is None when the account row does not exist.
    """

    from_amount: Decimal | None
    to_amount: Decimal | None
    currency_count: int


@dataclass(frozen=True)
class TransferReceipt:
    from_account_id: int
    to_account_id: int
    amount: Decimal
    from_amount_after: Decimal
    to_amount_after: Decimal
