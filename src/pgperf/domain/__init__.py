"""Domain layer - accounts, transfer requests and the error taxonomy."""

from pgperf.domain.exceptions import (
    AccountIntegrityError,
    AccountNotFoundError,
    ConservationError,
    CurrencyMismatchError,
    DomainError,
    InsufficientBalanceError,
    InvalidAmountError,
    ResourceUnavailableError,
    SameAccountError,
    TransferRejectedError,
)
from pgperf.domain.models import (
    SUPPORTED_CURRENCIES,
    Account,
    Currency,
    LockedPair,
    TransferReceipt,
    TransferRequest,
    User,
)


__all__ = [
    "SUPPORTED_CURRENCIES",
    "Account",
    "AccountIntegrityError",
    "AccountNotFoundError",
    "ConservationError",
    "Currency",
    "CurrencyMismatchError",
    "DomainError",
    "InsufficientBalanceError",
    "InvalidAmountError",
    "LockedPair",
    "ResourceUnavailableError",
    "SameAccountError",
    "TransferReceipt",
    "TransferRejectedError",
    "TransferRequest",
    "User",
]
