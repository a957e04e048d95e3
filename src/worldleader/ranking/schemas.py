"""Response schemas for leaderboard endpoints."""

from __future__ import annotations

from pydantic import BaseModel

from worldleader.db.models import Continent


class LeaderboardEntry(BaseModel):
    """One public leaderboard row."""

    id: int
    username: str
    country_code: str
    continent: Continent
    continent_rank: int
    global_rank: int


class LeaderboardResponse(BaseModel):
    """Leaderboard for one scope (a continent, or the world)."""

    scope: str
    total: int
    leaderboard: list[LeaderboardEntry]


class ContinentSummary(BaseModel):
    """Member count for one continent."""

    continent: Continent
    display_name: str
    users: int


class ContinentsResponse(BaseModel):
    """Member counts for all continents."""

    continents: list[ContinentSummary]
    total: int
