"""Table definitions for the benchmark database.

Mirrors ``alembic/versions/001_initial_schema.py``; used by the seeding
script and the integration tests to build a schema without running
migrations.
"""

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncEngine


metadata = sa.MetaData()

users = sa.Table(
    "users",
    metadata,
    sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=False),
    sa.Column("name", sa.String(128)),
)

accounts = sa.Table(
    "accounts",
    metadata,
    sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.BigInteger, sa.ForeignKey("users.id"), nullable=False),
    sa.Column("currency", sa.String(4), nullable=False),
    sa.Column("amount", sa.Numeric, nullable=False),
    sa.Index("ix_accounts_currency_amount", "currency", "amount"),
)


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


async def drop_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
