"""ORM models: users, the purchase ledger, and in-app notifications."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from worldleader.db.base import Base, BigIntPK


def utcnow() -> datetime:
    """Timezone-aware current time (UTC)."""
    return datetime.now(timezone.utc)


class Continent(str, enum.Enum):
    """Leaderboard scopes a user can compete in."""

    AFRICA = "AFRICA"
    ASIA = "ASIA"
    EUROPE = "EUROPE"
    NORTH_AMERICA = "NORTH_AMERICA"
    SOUTH_AMERICA = "SOUTH_AMERICA"
    OCEANIA = "OCEANIA"
    ANTARCTICA = "ANTARCTICA"

    @property
    def display_name(self) -> str:
        """Human-readable name, e.g. ``NORTH AMERICA``."""
        return self.value.replace("_", " ")


class TransactionStatus(str, enum.Enum):
    """Payment state of a ledger entry. Simulated payments are always COMPLETED."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A competitor. Rank columns are a cache rewritten by every recompute."""

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_ranking_order", "total_positions_purchased", "created_at"),
        Index("ix_users_continent_rank", "continent", "current_continent_rank"),
        Index("ix_users_global_rank", "current_global_rank"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    continent: Mapped[Continent] = mapped_column(
        Enum(Continent, name="continent", native_enum=False, length=16),
        nullable=False,
    )
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)

    total_positions_purchased: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_continent_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_global_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # Password reset: sha256 of the raw token, never the token itself
    reset_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    reset_token_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    # Set by writes to the account itself; rank recomputes leave it alone
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    transactions: Mapped[list[Transaction]] = relationship(
        "Transaction", back_populates="user", order_by="Transaction.timestamp.desc()"
    )
    notifications: Mapped[list[Notification]] = relationship(
        "Notification", back_populates="user", order_by="Notification.created_at.desc()"
    )


# ---------------------------------------------------------------------------
# Purchase ledger
# ---------------------------------------------------------------------------


class Transaction(Base):
    """Append-only purchase record."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount_usd: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    positions_purchased: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, name="transaction_status", native_enum=False, length=16),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    user: Mapped[User] = relationship("User", back_populates="transactions")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    """Persisted in-app notification."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read_status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    user: Mapped[User] = relationship("User", back_populates="notifications")
