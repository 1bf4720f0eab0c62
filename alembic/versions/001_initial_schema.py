"""Initial schema: users, accounts

Revision ID: 001
Revises:
Create Date: 2024-01-01

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(128), nullable=True),
    )

    op.create_table(
        "accounts",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("currency", sa.String(4), nullable=False),
        sa.Column("amount", sa.Numeric, nullable=False),
    )
    op.create_index("ix_accounts_currency_amount", "accounts", ["currency", "amount"])


def downgrade() -> None:
    op.drop_index("ix_accounts_currency_amount", table_name="accounts")
    op.drop_table("accounts")
    op.drop_table("users")
