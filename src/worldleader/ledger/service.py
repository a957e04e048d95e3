"""
Purchase ledger.

Turns a dollar amount into position credit ($1 = 1 position, fractions buy
nothing) and drives the purchase flow: record the transaction, recompute
rankings, work out who was overtaken, commit. The whole flow is one
database transaction executed under the ranking lock.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from worldleader.config import get_settings
from worldleader.db.models import Continent, Transaction, TransactionStatus, User, utcnow
from worldleader.errors import InvalidAmountError, PersistenceFailure, UserNotFoundError
from worldleader.ranking.engine import recalculate_rankings, serialized_ranking
from worldleader.ranking.overtake import detect_overtaken

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class OvertakeNotice:
    """Everything needed to tell one user they were overtaken."""

    user_id: int
    email: str
    username: str
    new_continent_rank: int
    positions_lost: int = 1


@dataclass
class PurchaseOutcome:
    """Result of a committed purchase."""

    transaction_id: int
    buyer_id: int
    buyer_username: str
    continent: Continent
    positions_purchased: int
    total_positions_purchased: int
    old_continent_rank: int
    new_continent_rank: int
    old_global_rank: int
    new_global_rank: int
    overtaken: list[OvertakeNotice] = field(default_factory=list)

    @property
    def positions_moved(self) -> int:
        """Continent slots gained by this purchase."""
        return self.old_continent_rank - self.new_continent_rank

    @property
    def message(self) -> str:
        """Short celebratory line for the buyer."""
        if self.new_continent_rank == 1:
            return "You're the Continental Leader!"
        return f"You climbed {self.positions_moved} positions!"


# ---------------------------------------------------------------------------
# Amount rules
# ---------------------------------------------------------------------------


def validate_amount(amount_usd: float, max_amount: float | None = None) -> None:
    """
    Check that a purchase amount is usable.

    Raises:
        InvalidAmountError: If the amount is not a finite number of whole cents
            in [0.01, max_amount].
    """
    if max_amount is None:
        max_amount = get_settings().purchase_max_usd
    if isinstance(amount_usd, bool) or not isinstance(amount_usd, (int, float, Decimal)):
        msg = "Amount must be a number"
        raise InvalidAmountError(msg)
    if not math.isfinite(amount_usd):
        msg = "Amount must be a finite number"
        raise InvalidAmountError(msg)
    if amount_usd <= 0:
        msg = "Amount must be greater than 0"
        raise InvalidAmountError(msg)
    if amount_usd > max_amount:
        msg = f"Amount must not exceed {max_amount:g}"
        raise InvalidAmountError(msg)
    cents = Decimal(str(amount_usd))
    if cents < _CENTS:
        msg = "Amount must be at least 0.01"
        raise InvalidAmountError(msg)
    if cents != cents.quantize(_CENTS):
        msg = "Amount must not have more than two decimal places"
        raise InvalidAmountError(msg)


def positions_for_amount(amount_usd: float) -> int:
    """Positions bought by an amount: floor, never round ($4.99 buys 4)."""
    return math.floor(amount_usd)


# ---------------------------------------------------------------------------
# Ledger writes
# ---------------------------------------------------------------------------


async def record_purchase(
    db: AsyncSession,
    user_id: int,
    amount_usd: float,
    positions_purchased: int,
) -> Transaction:
    """
    Append a COMPLETED transaction and credit the user's total.

    Both writes happen in the caller's transaction; nothing is committed here.

    Raises:
        UserNotFoundError: If the user no longer exists.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            total_positions_purchased=User.total_positions_purchased + positions_purchased,
            updated_at=utcnow(),
        )
    )
    if result.rowcount == 0:  # type: ignore[attr-defined]
        msg = f"User {user_id} not found"
        raise UserNotFoundError(msg)

    transaction = Transaction(
        user_id=user_id,
        amount_usd=Decimal(str(amount_usd)).quantize(_CENTS),
        positions_purchased=positions_purchased,
        status=TransactionStatus.COMPLETED,
    )
    db.add(transaction)
    await db.flush()
    return transaction


async def _load_overtake_notices(
    db: AsyncSession,
    overtaken: list[tuple[int, int]],
) -> list[OvertakeNotice]:
    """Resolve (user_id, new_rank) pairs to contact details, keeping rank order."""
    if not overtaken:
        return []
    ids = [uid for uid, _ in overtaken]
    result = await db.execute(select(User.id, User.email, User.username).where(User.id.in_(ids)))
    contacts = {row.id: row for row in result}
    notices = []
    for uid, rank in overtaken:
        row = contacts.get(uid)
        if row is None:
            continue
        notices.append(OvertakeNotice(user_id=uid, email=row.email, username=row.username, new_continent_rank=rank))
    return notices


async def purchase_positions(
    db: AsyncSession,
    user_id: int,
    amount_usd: float,
) -> PurchaseOutcome:
    """
    Buy positions for a user and commit the new ranking.

    Steps, as one transaction under the ranking lock: capture the buyer's
    ranks, record the purchase, recompute all ranks, derive the overtaken
    users from that same recompute, commit.

    Raises:
        InvalidAmountError: Before anything is written.
        UserNotFoundError: If the buyer vanished; rolled back.
        PersistenceFailure: If storage failed; rolled back.
    """
    validate_amount(amount_usd)
    positions = positions_for_amount(amount_usd)

    try:
        async with serialized_ranking(db):
            result = await db.execute(select(User).where(User.id == user_id).execution_options(populate_existing=True))
            buyer = result.scalar_one_or_none()
            if buyer is None:
                msg = f"User {user_id} not found"
                raise UserNotFoundError(msg)

            old_continent_rank = buyer.current_continent_rank
            old_global_rank = buyer.current_global_rank

            transaction = await record_purchase(db, buyer.id, amount_usd, positions)
            snapshot = await recalculate_rankings(db)
            mine = next(r for r in snapshot if r.user_id == buyer.id)

            overtaken = detect_overtaken(
                snapshot,
                buyer_id=buyer.id,
                continent=buyer.continent,
                old_rank=old_continent_rank,
                new_rank=mine.continent_rank,
            )
            notices = await _load_overtake_notices(
                db, [(o.user_id, o.new_continent_rank) for o in overtaken]
            )
            await db.commit()
    except (UserNotFoundError, PersistenceFailure):
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("purchase_failed", user_id=user_id)
        msg = "Purchase could not be recorded"
        raise PersistenceFailure(msg) from e

    outcome = PurchaseOutcome(
        transaction_id=transaction.id,
        buyer_id=buyer.id,
        buyer_username=buyer.username,
        continent=buyer.continent,
        positions_purchased=positions,
        total_positions_purchased=mine.total_positions_purchased,
        old_continent_rank=old_continent_rank,
        new_continent_rank=mine.continent_rank,
        old_global_rank=old_global_rank,
        new_global_rank=mine.global_rank,
        overtaken=notices,
    )
    logger.info(
        "purchase_completed",
        user_id=buyer.id,
        amount_usd=float(amount_usd),
        positions=positions,
        old_rank=old_continent_rank,
        new_rank=outcome.new_continent_rank,
        overtaken=len(notices),
    )
    return outcome


# ---------------------------------------------------------------------------
# Ledger reads
# ---------------------------------------------------------------------------


async def get_user_transactions(db: AsyncSession, user_id: int, limit: int = 10) -> list[Transaction]:
    """Most recent transactions first."""
    result = await db.execute(
        select(Transaction)
        .where(Transaction.user_id == user_id)
        .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_total_spent(db: AsyncSession, user_id: int) -> float:
    """Sum of all purchase amounts for a user."""
    result = await db.execute(
        select(func.coalesce(func.sum(Transaction.amount_usd), 0)).where(Transaction.user_id == user_id)
    )
    return float(result.scalar_one())
