"""Initial schema: users, transactions, notifications.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

CONTINENTS = ("AFRICA", "ASIA", "EUROPE", "NORTH_AMERICA", "SOUTH_AMERICA", "OCEANIA", "ANTARCTICA")


def upgrade() -> None:
    """Create the leaderboard tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("username", sa.String(20), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("continent", sa.String(16), nullable=False),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.Column("total_positions_purchased", sa.Integer(), server_default="0", nullable=False),
        sa.Column("current_continent_rank", sa.Integer(), server_default="0", nullable=False),
        sa.Column("current_global_rank", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reset_token", sa.String(64), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.CheckConstraint("total_positions_purchased >= 0", name="ck_users_positions_non_negative"),
    )
    op.execute(
        "ALTER TABLE users ADD CONSTRAINT ck_users_continent "
        f"CHECK (continent IN ({', '.join(repr(c) for c in CONTINENTS)}))"
    )
    op.create_index("ix_users_reset_token", "users", ["reset_token"])
    op.create_index("ix_users_ranking_order", "users", ["total_positions_purchased", "created_at"])
    op.create_index("ix_users_continent_rank", "users", ["continent", "current_continent_rank"])
    op.create_index("ix_users_global_rank", "users", ["current_global_rank"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount_usd", sa.Numeric(10, 2), nullable=False),
        sa.Column("positions_purchased", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), server_default="COMPLETED", nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("status IN ('PENDING', 'COMPLETED', 'FAILED')", name="ck_transactions_status"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("read_status", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    """Drop the leaderboard tables."""
    op.drop_table("notifications")
    op.drop_table("transactions")
    op.drop_table("users")
