from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


class Database:
    """Explicitly owned, bounded connection pool.

    ``max_overflow`` is 0, so at most ``pool_size`` connections exist. A task
    asking for a connection while all of them are checked out waits up to
    ``pool_timeout`` seconds.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        pool_timeout: float = 30.0,
        lock_timeout_ms: int | None = None,
    ) -> None:
        connect_args: dict[str, Any] = {}
        if lock_timeout_ms is not None:
            connect_args["server_settings"] = {"lock_timeout": str(lock_timeout_ms)}

        self.pool_size = pool_size
        self.engine = create_async_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=pool_timeout,
            connect_args=connect_args,
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    def checked_out(self) -> int:
        """Number of connections currently in use."""
        return self.engine.pool.checkedout()  # type: ignore[attr-defined]

    async def close(self) -> None:
        await self.engine.dispose()
