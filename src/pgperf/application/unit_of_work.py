from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from pgperf.infrastructure.database import Database
from pgperf.infrastructure.repositories import AccountRepository, UserRepository


class UnitOfWork:
    """One transaction, owned by exactly one task for its whole lifetime."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.accounts = AccountRepository(session)
        self.users = UserRepository(session)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()


@asynccontextmanager
async def open_unit_of_work(database: Database) -> AsyncGenerator[UnitOfWork, None]:
    """Check a connection out of ``database`` and wrap it in a new UnitOfWork.

    Anything not committed when the block exits is rolled back and the
    connection goes back to the pool.
    """
    async with database.session() as session, UnitOfWork(session) as uow:
        yield uow
