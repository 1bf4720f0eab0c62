from collections.abc import Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from pgperf.domain.models import User


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: int) -> User | None:
        result = await self._session.execute(
            text("SELECT id, name FROM users WHERE id = :id"),
            {"id": user_id},
        )
        row = result.fetchone()
        if not row:
            return None
        return User(id=row.id, name=row.name)

    async def add_many(self, users: Sequence[User]) -> None:
        if not users:
            return
        await self._session.execute(
            text("INSERT INTO users (id, name) VALUES (:id, :name)"),
            [{"id": user.id, "name": user.name} for user in users],
        )
