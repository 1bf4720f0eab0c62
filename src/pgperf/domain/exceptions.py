from decimal import Decimal


class DomainError(Exception):
    """Base exception for domain errors."""


class TransferRejectedError(DomainError):
    """Business-rule rejection of a transfer.

    The caller rolls the transaction back. A rejected transfer is never
    retried with the same inputs.
    """

    code = "REJECTED"


class SameAccountError(TransferRejectedError):
    """Raised when source and destination are the same account."""

    code = "SELF_TRANSFER"

    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(f"Cannot transfer to the same account: {account_id}")


class InvalidAmountError(TransferRejectedError):
    """Raised when transfer amount is invalid."""

    code = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str) -> None:
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class AccountNotFoundError(TransferRejectedError):
    """Raised when an account cannot be found."""

    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class CurrencyMismatchError(TransferRejectedError):
    """Raised when the two accounts are denominated in different currencies."""

    code = "CURRENCY_MISMATCH"

    def __init__(self, from_account_id: int, to_account_id: int) -> None:
        self.from_account_id = from_account_id
        self.to_account_id = to_account_id
        super().__init__(f"Cannot transfer between different currencies: {from_account_id} -> {to_account_id}")


class InsufficientBalanceError(TransferRejectedError):
    """Raised when the source account cannot cover the amount."""

    code = "INSUFFICIENT_BALANCE"

    def __init__(self, account_id: int, required: Decimal, available: Decimal) -> None:
        self.account_id = account_id
        self.required = required
        self.available = available
        super().__init__(f"Account {account_id} has insufficient balance: required {required}, available {available}")


class AccountIntegrityError(DomainError):
    """Raised when a balance mutation did not affect exactly one row.

    Signals a vanished account or a non-unique identifier. Fatal, never retried.
    """

    def __init__(self, account_id: int, rows_affected: int) -> None:
        self.account_id = account_id
        self.rows_affected = rows_affected
        super().__init__(f"Expected to update exactly one row for account {account_id}, updated {rows_affected}")


class ResourceUnavailableError(DomainError):
    """Raised on pool exhaustion, lock-wait timeout or an abandoned lock wait.

    Recoverable by retrying the whole attempt in a new transaction.
    """

    def __init__(self, reason: str, detail: str | None = None) -> None:
        self.reason = reason
        self.detail = detail
        message = f"Resource unavailable: {reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ConservationError(DomainError):
    """Raised when the per-currency total changed across a benchmark run."""

    def __init__(self, currency: str, before: Decimal, after: Decimal) -> None:
        self.currency = currency
        self.before = before
        self.after = after
        super().__init__(f"Total {currency} amount changed (before/after) {before}/{after}")
