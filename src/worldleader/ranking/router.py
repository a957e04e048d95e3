"""Leaderboard router — /api/v1/leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from worldleader.database import get_session
from worldleader.db.models import Continent
from worldleader.ranking.engine import count_users, get_continent_counts, get_leaderboard
from worldleader.ranking.schemas import (
    ContinentsResponse,
    ContinentSummary,
    LeaderboardEntry,
    LeaderboardResponse,
)

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])


@router.get("", response_model=LeaderboardResponse)
async def leaderboard(
    continent: Continent | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Ranked users for one continent, or globally when no continent is given."""
    users = await get_leaderboard(db, continent=continent, limit=limit)
    total = await count_users(db, continent)
    return LeaderboardResponse(
        scope=continent.value if continent else "GLOBAL",
        total=total,
        leaderboard=[
            LeaderboardEntry(
                id=u.id,
                username=u.username,
                country_code=u.country_code,
                continent=u.continent,
                continent_rank=u.current_continent_rank,
                global_rank=u.current_global_rank,
            )
            for u in users
        ],
    )


@router.get("/continents", response_model=ContinentsResponse)
async def continents(db: AsyncSession = Depends(get_session)) -> ContinentsResponse:
    """Member count per continent."""
    counts = await get_continent_counts(db)
    return ContinentsResponse(
        continents=[
            ContinentSummary(continent=c, display_name=c.display_name, users=n)
            for c, n in counts.items()
        ],
        total=sum(counts.values()),
    )
