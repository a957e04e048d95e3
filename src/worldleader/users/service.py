"""Profile statistics for the authenticated user."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from worldleader.db.models import User
from worldleader.ledger.service import get_total_spent
from worldleader.ranking.engine import count_users


@dataclass
class ProfileStats:
    total_spent: float
    continent_users_count: int
    global_users_count: int
    continent_percentile: int
    global_percentile: int


def rank_percentile(rank: int, population: int) -> int:
    """Share of the population at or below this rank, as a whole percent.

    Rank 1 of N is 100; last place of N is round(100 / N).
    """
    if population <= 0 or rank <= 0:
        return 0
    return round((population - rank + 1) / population * 100)


async def get_profile_stats(db: AsyncSession, user: User) -> ProfileStats:
    continent_count = await count_users(db, user.continent)
    global_count = await count_users(db)
    return ProfileStats(
        total_spent=await get_total_spent(db, user.id),
        continent_users_count=continent_count,
        global_users_count=global_count,
        continent_percentile=rank_percentile(user.current_continent_rank, continent_count),
        global_percentile=rank_percentile(user.current_global_rank, global_count),
    )
