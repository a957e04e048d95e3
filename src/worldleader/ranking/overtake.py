"""Overtake detection: who got pushed down by a buyer's climb."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from worldleader.db.models import Continent
from worldleader.ranking.engine import RankedUser


@dataclass(frozen=True)
class OvertakenUser:
    """A user displaced by a purchase, with their post-recompute rank."""

    user_id: int
    new_continent_rank: int


def detect_overtaken(
    snapshot: Iterable[RankedUser],
    buyer_id: int,
    continent: Continent,
    old_rank: int,
    new_rank: int,
) -> list[OvertakenUser]:
    """Users of ``continent`` the buyer jumped over, in rank order.

    ``snapshot`` must be the assignment produced by the same recompute that
    moved the buyer from ``old_rank`` to ``new_rank``. The buyer now holds
    ``new_rank`` and everyone who was in ``new_rank .. old_rank - 1`` moved
    down exactly one slot, so the displaced users hold ``new_rank + 1 ..
    old_rank``. Returns an empty list when the buyer did not climb.
    """
    if new_rank >= old_rank:
        return []

    overtaken = [
        OvertakenUser(user_id=r.user_id, new_continent_rank=r.continent_rank)
        for r in snapshot
        if r.continent == continent
        and r.user_id != buyer_id
        and new_rank < r.continent_rank <= old_rank
    ]
    overtaken.sort(key=lambda o: o.new_continent_rank)
    return overtaken
