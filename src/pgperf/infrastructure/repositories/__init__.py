"""Repository implementations."""

from pgperf.infrastructure.repositories.account import AccountRepository
from pgperf.infrastructure.repositories.user import UserRepository


__all__ = [
    "AccountRepository",
    "UserRepository",
]
