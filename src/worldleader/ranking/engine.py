"""Ranking engine: full recomputation of continent and global ranks.

Every run ranks the whole population from scratch. The order is strict:
most positions purchased first, then earliest registration, then lowest id,
so no two users ever share a rank. Continent ranks are the global order
re-indexed within each continent, which keeps the two scopes consistent.

The rank columns on ``users`` are a cache of this order. They are rewritten
in a single bulk UPDATE inside the caller's transaction, so readers see
either the old assignment or the new one, never a mix.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from worldleader.db.models import Continent, User
from worldleader.errors import PersistenceFailure

logger = structlog.get_logger()

# Key for pg_advisory_xact_lock; any constant shared by all writers works.
RANKING_ADVISORY_LOCK_KEY = 0x574C5241  # "WLRA"

_ranking_lock = asyncio.Lock()


@dataclass
class RankedUser:
    """One row of a rank assignment."""

    user_id: int
    continent: Continent
    total_positions_purchased: int
    created_at: datetime
    global_rank: int = 0
    continent_rank: int = 0


def sort_key(user: RankedUser) -> tuple[int, datetime, int]:
    """Composite ordering key: positions DESC, created_at ASC, id ASC."""
    return (-user.total_positions_purchased, user.created_at, user.user_id)


def rank_users(users: Iterable[RankedUser]) -> list[RankedUser]:
    """Assign global and continent ranks. Pure; returns users in global order."""
    ordered = sorted(users, key=sort_key)
    continent_counters: dict[Continent, int] = {}

    for index, user in enumerate(ordered):
        user.global_rank = index + 1
        continent_counters[user.continent] = continent_counters.get(user.continent, 0) + 1
        user.continent_rank = continent_counters[user.continent]

    return ordered


async def load_ranking_rows(db: AsyncSession) -> list[RankedUser]:
    """Read the fields the ranking depends on for every user."""
    result = await db.execute(
        select(User.id, User.continent, User.total_positions_purchased, User.created_at)
    )
    return [
        RankedUser(
            user_id=row.id,
            continent=Continent(row.continent),
            total_positions_purchased=row.total_positions_purchased,
            created_at=row.created_at,
        )
        for row in result
    ]


async def recalculate_rankings(db: AsyncSession) -> list[RankedUser]:
    """Recompute every user's ranks and write them back in one statement.

    Does not commit. Returns the assignment that was persisted.

    Raises:
        PersistenceFailure: If reading or writing the rank columns fails.
    """
    try:
        ranked = rank_users(await load_ranking_rows(db))
        if ranked:
            params: list[dict[str, Any]] = [
                {
                    "id": r.user_id,
                    "current_global_rank": r.global_rank,
                    "current_continent_rank": r.continent_rank,
                }
                for r in ranked
            ]
            await db.execute(update(User), params)
    except SQLAlchemyError as e:
        logger.exception("rankings_recalculate_failed")
        msg = "Failed to persist rankings"
        raise PersistenceFailure(msg) from e

    logger.info("rankings_recalculated", users=len(ranked))
    return ranked


@asynccontextmanager
async def serialized_ranking(db: AsyncSession) -> AsyncIterator[None]:
    """Run a read-modify-write of rank state as the only writer.

    Holds a process-wide lock for the duration of the block and, on
    PostgreSQL, a transaction-scoped advisory lock so that workers in other
    processes queue behind it too. The advisory lock is released when the
    caller's transaction commits or rolls back.
    """
    async with _ranking_lock:
        if db.get_bind().dialect.name == "postgresql":
            await db.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": RANKING_ADVISORY_LOCK_KEY},
            )
        yield


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_new_user_starting_rank(db: AsyncSession, continent: Continent) -> int:
    """Provisional rank for a new member: last place in the continent."""
    result = await db.execute(
        select(func.count()).select_from(User).where(User.continent == continent)
    )
    return result.scalar_one() + 1


async def get_leaderboard(
    db: AsyncSession,
    continent: Continent | None = None,
    limit: int = 100,
) -> list[User]:
    """Users ordered by the requested scope's rank, truncated to ``limit``."""
    stmt = select(User)
    if continent is not None:
        stmt = stmt.where(User.continent == continent).order_by(User.current_continent_rank.asc())
    else:
        stmt = stmt.order_by(User.current_global_rank.asc())
    result = await db.execute(stmt.limit(limit))
    return list(result.scalars().all())


async def count_users(db: AsyncSession, continent: Continent | None = None) -> int:
    """Number of competitors, optionally within one continent."""
    stmt = select(func.count()).select_from(User)
    if continent is not None:
        stmt = stmt.where(User.continent == continent)
    result = await db.execute(stmt)
    return result.scalar_one()


async def get_continent_counts(db: AsyncSession) -> dict[Continent, int]:
    """Member count per continent, including empty continents."""
    result = await db.execute(select(User.continent, func.count()).group_by(User.continent))
    counts = {c: 0 for c in Continent}
    for continent, count in result:
        counts[Continent(continent)] = count
    return counts
