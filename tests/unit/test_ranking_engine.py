"""Unit tests for rank assignment."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from tests.conftest import add_user
from worldleader.db.models import Continent, User
from worldleader.ranking.engine import (
    RankedUser,
    get_continent_counts,
    get_leaderboard,
    get_new_user_starting_rank,
    rank_users,
    recalculate_rankings,
)

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _ru(user_id: int, continent: Continent, positions: int, minute: int = 0) -> RankedUser:
    return RankedUser(
        user_id=user_id,
        continent=continent,
        total_positions_purchased=positions,
        created_at=T0 + timedelta(minutes=minute),
    )


class TestRankUsers:
    def test_empty_population(self):
        assert rank_users([]) == []

    def test_most_positions_first(self):
        ranked = rank_users([
            _ru(1, Continent.EUROPE, 5),
            _ru(2, Continent.EUROPE, 50),
            _ru(3, Continent.EUROPE, 20),
        ])
        assert [r.user_id for r in ranked] == [2, 3, 1]
        assert [r.global_rank for r in ranked] == [1, 2, 3]
        assert [r.continent_rank for r in ranked] == [1, 2, 3]

    def test_tie_broken_by_earliest_registration(self):
        ranked = rank_users([
            _ru(1, Continent.ASIA, 10, minute=5),
            _ru(2, Continent.ASIA, 10, minute=1),
        ])
        assert [r.user_id for r in ranked] == [2, 1]

    def test_full_tie_broken_by_id(self):
        ranked = rank_users([
            _ru(9, Continent.ASIA, 10),
            _ru(4, Continent.ASIA, 10),
        ])
        assert [r.user_id for r in ranked] == [4, 9]

    def test_ranks_are_a_permutation_per_continent(self):
        users = [_ru(i, list(Continent)[i % 3], positions=i * 7 % 11, minute=i) for i in range(1, 31)]
        ranked = rank_users(users)

        assert sorted(r.global_rank for r in ranked) == list(range(1, 31))
        for continent in {r.continent for r in ranked}:
            ranks = sorted(r.continent_rank for r in ranked if r.continent == continent)
            assert ranks == list(range(1, len(ranks) + 1))

    def test_continent_order_agrees_with_global_order(self):
        users = [_ru(i, list(Continent)[i % 2], positions=(i * 13) % 17, minute=i) for i in range(1, 21)]
        ranked = rank_users(users)
        for continent in (Continent.AFRICA, Continent.ASIA):
            members = [r for r in ranked if r.continent == continent]
            by_continent = sorted(members, key=lambda r: r.continent_rank)
            by_global = sorted(members, key=lambda r: r.global_rank)
            assert by_continent == by_global

    def test_continents_are_ranked_independently(self):
        ranked = rank_users([
            _ru(1, Continent.EUROPE, 100),
            _ru(2, Continent.AFRICA, 1),
            _ru(3, Continent.EUROPE, 50),
        ])
        by_id = {r.user_id: r for r in ranked}
        assert by_id[2].continent_rank == 1
        assert by_id[2].global_rank == 3
        assert by_id[3].continent_rank == 2


class TestRecalculateRankings:
    async def test_persists_ranks(self, db_session):
        low = await add_user(db_session, "low", positions=1)
        high = await add_user(db_session, "high", positions=9)
        other = await add_user(db_session, "other", Continent.OCEANIA, positions=3)
        await recalculate_rankings(db_session)
        await db_session.commit()

        result = await db_session.execute(select(User).execution_options(populate_existing=True))
        rows = {u.username: u for u in result.scalars()}
        assert (rows["high"].current_continent_rank, rows["high"].current_global_rank) == (1, 1)
        assert (rows["other"].current_continent_rank, rows["other"].current_global_rank) == (1, 2)
        assert (rows["low"].current_continent_rank, rows["low"].current_global_rank) == (2, 3)
        assert {low.id, high.id, other.id} == {u.id for u in rows.values()}

    async def test_is_idempotent(self, db_session):
        for i in range(5):
            await add_user(db_session, f"user{i}", positions=i % 2, joined_minutes_ago=i)
        first = [(r.user_id, r.global_rank, r.continent_rank) for r in await recalculate_rankings(db_session)]
        second = [(r.user_id, r.global_rank, r.continent_rank) for r in await recalculate_rankings(db_session)]
        assert first == second

    async def test_empty_table(self, db_session):
        assert await recalculate_rankings(db_session) == []


class TestQueries:
    async def test_starting_rank_is_last_place(self, db_session):
        assert await get_new_user_starting_rank(db_session, Continent.EUROPE) == 1
        await add_user(db_session, "first")
        await add_user(db_session, "second")
        assert await get_new_user_starting_rank(db_session, Continent.EUROPE) == 3
        assert await get_new_user_starting_rank(db_session, Continent.ASIA) == 1

    async def test_leaderboard_order_and_limit(self, db_session):
        await add_user(db_session, "a", positions=1)
        await add_user(db_session, "b", positions=3)
        await add_user(db_session, "c", positions=2)
        await recalculate_rankings(db_session)
        await db_session.commit()

        top = await get_leaderboard(db_session, limit=2)
        assert [u.username for u in top] == ["b", "c"]

    async def test_continent_counts_include_empty(self, db_session):
        await add_user(db_session, "eu")
        await add_user(db_session, "as", Continent.ASIA)
        counts = await get_continent_counts(db_session)
        assert counts[Continent.EUROPE] == 1
        assert counts[Continent.ASIA] == 1
        assert counts[Continent.ANTARCTICA] == 0
        assert len(counts) == len(Continent)
